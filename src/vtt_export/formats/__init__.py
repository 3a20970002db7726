"""
Export formats: the adapter interface, the built-in adapters and the registry.
"""

from .adapters import FantasyGroundsAdapter, FoundryVTTAdapter, GenericJSONAdapter, Roll20Adapter
from .base import FormatAdapter
from .registry import FormatAdapterRegistry, RankedAdapter, create_default_registry

__all__ = [
    "FormatAdapter",
    "FormatAdapterRegistry",
    "RankedAdapter",
    "create_default_registry",
    "FantasyGroundsAdapter",
    "FoundryVTTAdapter",
    "GenericJSONAdapter",
    "Roll20Adapter",
]
