"""
Abstract base class for format adapters.

Every target format (Foundry VTT, Fantasy Grounds, Roll20, generic JSON)
implements this interface so the registry can rank and drive them uniformly.
``convert`` is a template method: subclasses supply the document builder and
never deal with timing, validation or failure reporting themselves.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from ..compatibility import CompatibilityEngine
from ..errors import RawFailure, classify_failure, missing_fields_error
from ..importers.dndbeyond.reader import CharacterSheet
from ..models import (
    CompatibilityAnalysis,
    ConversionOptions,
    ConversionPerformance,
    ConversionResult,
    FormatCapability,
    FormatMetadata,
)
from ..spellcasting.calculator import SpellSlotCalculator

DEFAULT_JSON_INDENT = 2


class FormatAdapter(ABC):
    """Abstract base class for character format converters.

    Subclasses must implement:
    - get_metadata(): Identity of the format (id, name, file extension...).
    - get_supported_features(): Declared support for each feature row.
    - build_document(): Produce the target document for a character.

    Subclasses may override serialize() (defaults to JSON text),
    generate_warnings() and get_conversion_options().

    Args:
        engine: Compatibility engine used for analysis. Shared engines are fine;
            the engine is stateless.
        calculator: Spell slot calculator used for slot fields.

    Raises:
        ValueError: If the declared capabilities list a feature twice.
    """

    def __init__(
        self,
        engine: CompatibilityEngine | None = None,
        calculator: SpellSlotCalculator | None = None,
    ) -> None:
        self.engine = engine or CompatibilityEngine()
        self.calculator = calculator or SpellSlotCalculator()

        features = [capability.feature for capability in self.get_supported_features()]
        duplicates = sorted({f for f in features if features.count(f) > 1})
        if duplicates:
            raise ValueError(
                f"{type(self).__name__} declares duplicate capabilities: {', '.join(duplicates)}"
            )

        self.logger = logging.getLogger(f"vtt-export.formats.{self.format_id}")

    @property
    def format_id(self) -> str:
        return self.get_metadata().id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(format_id={self.format_id!r})"

    @abstractmethod
    def get_metadata(self) -> FormatMetadata:
        """Describe the target format."""
        ...

    @abstractmethod
    def get_supported_features(self) -> list[FormatCapability]:
        """Declared support per feature. Each feature appears at most once."""
        ...

    @abstractmethod
    def build_document(self, sheet: CharacterSheet, options: ConversionOptions) -> Any:
        """Build the target document for a character that passed ``can_convert``.

        May raise; ``convert`` turns any exception into a failed result.
        """
        ...

    def serialize(self, document: Any, options: ConversionOptions) -> str:
        indent = options.format_options.get("indent", DEFAULT_JSON_INDENT)
        return json.dumps(document, indent=indent)

    def generate_warnings(self, sheet: CharacterSheet) -> list[str]:
        return []

    def get_conversion_options(self) -> dict[str, Any]:
        """Format-specific options understood in ``ConversionOptions.format_options``."""
        return {"indent": DEFAULT_JSON_INDENT}

    def can_convert(self, character: CharacterSheet | dict[str, Any]) -> bool:
        """A character needs an id, a name and at least one ability score entry."""
        return CharacterSheet.wrap(character).is_valid_for_conversion()

    async def analyze_compatibility(self, character: CharacterSheet | dict[str, Any]) -> CompatibilityAnalysis:
        return self.engine.generate_compatibility_analysis(
            CharacterSheet.wrap(character), self.get_supported_features()
        )

    async def convert(
        self,
        character: CharacterSheet | dict[str, Any],
        options: ConversionOptions | None = None,
    ) -> ConversionResult:
        """Convert a character. Never raises; failures come back as data."""
        options = options or ConversionOptions()
        metadata = self.get_metadata()
        started = time.perf_counter()
        sheet = CharacterSheet.wrap(character)

        if not self.can_convert(sheet):
            failure = missing_fields_error(metadata.id, metadata.name)
            self.logger.warning("Refusing to convert %r: %s", sheet, failure.message)
            return ConversionResult(success=False, error=failure.message, failure=failure)

        try:
            document = self.build_document(sheet, options)
            data = self.serialize(document, options)
            warnings = self.generate_warnings(sheet)
        except Exception as e:
            failure = classify_failure(RawFailure.from_exception(e, component=metadata.id))
            self.logger.error("%s conversion of %r failed: %s", metadata.name, sheet, e, exc_info=True)
            return ConversionResult(
                success=False,
                error=f"{metadata.name} conversion failed: {str(e) or 'Unknown error'}",
                failure=failure,
            )

        elapsed_ms = round((time.perf_counter() - started) * 1000)
        self.logger.info("Converted %r to %s in %dms (%d chars)", sheet.name, metadata.id, elapsed_ms, len(data))
        return ConversionResult(
            success=True,
            data=data,
            warnings=warnings,
            performance=ConversionPerformance(conversion_time=elapsed_ms, data_size=len(data)),
        )
