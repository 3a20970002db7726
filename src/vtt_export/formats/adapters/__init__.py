"""
Built-in format adapters.
"""

from .fantasy_grounds import FantasyGroundsAdapter
from .foundry import FoundryVTTAdapter
from .generic_json import GenericJSONAdapter
from .roll20 import Roll20Adapter

__all__ = [
    "FantasyGroundsAdapter",
    "FoundryVTTAdapter",
    "GenericJSONAdapter",
    "Roll20Adapter",
]
