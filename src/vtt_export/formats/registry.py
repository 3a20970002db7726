"""
Registry of format adapters.

The registry holds at most one adapter per format id, in registration order.
Writers replace an immutable snapshot under a lock, so readers (including
concurrent compatibility rankings) always see a consistent set of adapters
without locking.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from ..compatibility import CompatibilityEngine
from ..errors import unknown_format_error
from ..importers.dndbeyond.reader import CharacterSheet
from ..models import (
    CompatibilityAnalysis,
    ConversionOptions,
    ConversionResult,
    FormatMetadata,
    Recommendation,
)
from ..spellcasting.calculator import SpellSlotCalculator
from .adapters import FantasyGroundsAdapter, FoundryVTTAdapter, GenericJSONAdapter, Roll20Adapter
from .base import FormatAdapter

logger = logging.getLogger("vtt-export.formats.registry")

ANALYSIS_FAILED = "Analysis failed"


def failed_analysis() -> CompatibilityAnalysis:
    """Stand-in analysis for an adapter whose own analysis raised."""
    return CompatibilityAnalysis(
        score=0,
        capabilities=[],
        recommendation=Recommendation.POOR,
        limitations=[ANALYSIS_FAILED],
        data_loss=100,
    )


@dataclass
class RankedAdapter:
    """An adapter paired with its compatibility analysis for one character."""
    adapter: FormatAdapter
    compatibility: CompatibilityAnalysis

    @property
    def format_id(self) -> str:
        return self.adapter.format_id


class FormatAdapterRegistry:
    """Holds format adapters keyed by format id.

    Re-registering an id replaces the adapter but keeps its original position.

    Usage:
        registry = create_default_registry()
        ranked = await registry.get_adapters_by_compatibility(character)
        result = await ranked[0].adapter.convert(character)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._adapters: Mapping[str, FormatAdapter] = MappingProxyType({})

    def register(self, adapter: FormatAdapter) -> None:
        format_id = adapter.format_id
        with self._lock:
            adapters = dict(self._adapters)
            replaced = format_id in adapters
            adapters[format_id] = adapter
            self._adapters = MappingProxyType(adapters)

        if replaced:
            logger.info("Replaced format adapter %s with %r", format_id, adapter)
        else:
            logger.debug("Registered format adapter %s", format_id)

    def unregister(self, format_id: str) -> bool:
        """Remove an adapter. Returns False if the id was not registered."""
        with self._lock:
            if format_id not in self._adapters:
                return False
            adapters = dict(self._adapters)
            del adapters[format_id]
            self._adapters = MappingProxyType(adapters)

        logger.debug("Unregistered format adapter %s", format_id)
        return True

    def clear(self) -> None:
        with self._lock:
            self._adapters = MappingProxyType({})

    def get_adapter(self, format_id: str) -> FormatAdapter | None:
        return self._adapters.get(format_id)

    def get_all_adapters(self) -> list[FormatAdapter]:
        """All adapters, in registration order."""
        return list(self._adapters.values())

    def size(self) -> int:
        return len(self._adapters)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, format_id: object) -> bool:
        return format_id in self._adapters

    def get_supported_format_ids(self) -> list[str]:
        return list(self._adapters.keys())

    def is_format_supported(self, format_id: str) -> bool:
        return format_id in self._adapters

    def get_all_format_metadata(self) -> list[FormatMetadata]:
        return [adapter.get_metadata() for adapter in self._adapters.values()]

    async def get_adapters_by_compatibility(
        self, character: CharacterSheet | dict[str, Any]
    ) -> list[RankedAdapter]:
        """Rank every adapter by compatibility score, best first.

        Adapters may implement ``analyze_compatibility`` as a plain method or
        a coroutine. Analyses run concurrently. An adapter whose analysis
        raises is ranked with a zero-score placeholder instead of failing the
        whole ranking.
        Adapters with equal scores keep their registration order.
        """
        adapters = self.get_all_adapters()
        if not adapters:
            return []

        sheet = CharacterSheet.wrap(character)

        async def analyze(adapter: FormatAdapter) -> CompatibilityAnalysis:
            result = adapter.analyze_compatibility(sheet)
            if inspect.isawaitable(result):
                result = await result
            return result

        results = await asyncio.gather(*(analyze(adapter) for adapter in adapters), return_exceptions=True)

        ranked: list[RankedAdapter] = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, Exception):
                logger.warning("Compatibility analysis failed for %s: %s", adapter.format_id, result)
                result = failed_analysis()
            elif isinstance(result, BaseException):
                raise result
            ranked.append(RankedAdapter(adapter=adapter, compatibility=result))

        ranked.sort(key=lambda entry: -entry.compatibility.score)
        return ranked

    async def convert(
        self,
        format_id: str,
        character: CharacterSheet | dict[str, Any],
        options: ConversionOptions | None = None,
    ) -> ConversionResult:
        """Convert with the adapter registered for ``format_id``."""
        adapter = self.get_adapter(format_id)
        if adapter is None:
            failure = unknown_format_error(format_id)
            logger.warning(failure.message)
            return ConversionResult(success=False, error=failure.message, failure=failure)
        return await adapter.convert(character, options)


def create_default_registry(
    engine: CompatibilityEngine | None = None,
    calculator: SpellSlotCalculator | None = None,
) -> FormatAdapterRegistry:
    """Registry with the built-in adapters, sharing one engine and calculator."""
    engine = engine or CompatibilityEngine()
    calculator = calculator or SpellSlotCalculator()

    registry = FormatAdapterRegistry()
    for adapter_class in (FoundryVTTAdapter, FantasyGroundsAdapter, Roll20Adapter, GenericJSONAdapter):
        registry.register(adapter_class(engine=engine, calculator=calculator))
    return registry
