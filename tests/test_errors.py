"""Tests for the conversion error taxonomy."""

import pytest
from pydantic import TypeAdapter, ValidationError

from vtt_export.errors import (
    CharacterFileError,
    ClassifiedConversionError,
    ConversionFailure,
    ErrorCategory,
    ErrorSeverity,
    ExportError,
    RawFailure,
    classify_failure,
    missing_fields_error,
    unknown_format_error,
)
from vtt_export.models import ConversionResult

failure_adapter = TypeAdapter(ConversionFailure)


class TestRawFailure:
    """Capturing exceptions."""

    def test_from_exception(self):
        """Message, type and component are captured."""
        failure = RawFailure.from_exception(ValueError("bad level"), component="roll20")

        assert failure.kind == "raw"
        assert failure.message == "bad level"
        assert failure.exception_type == "ValueError"
        assert failure.component == "roll20"


class TestClassifyFailure:
    """Turning raw failures into classified ones."""

    def test_classified_passes_through(self):
        """Already-classified failures are returned unchanged."""
        failure = missing_fields_error("roll20", "Roll20")
        assert classify_failure(failure) is failure

    @pytest.mark.parametrize("exc", [KeyError("x"), TypeError("x"), AttributeError("x"), ValueError("x"), IndexError("x")])
    def test_data_errors_are_computation(self, exc):
        """Malformed data errors are computation failures."""
        classified = classify_failure(RawFailure.from_exception(exc, component="foundry-vtt"))

        assert classified.category is ErrorCategory.COMPUTATION
        assert classified.code == "COMPUTATION_MALFORMED_DATA"
        assert classified.component == "foundry-vtt"
        assert classified.recoverable is False

    def test_other_errors_are_adapter_failures(self):
        """Anything else is an adapter failure."""
        classified = classify_failure(RawFailure.from_exception(RuntimeError("broken")))

        assert classified.category is ErrorCategory.ADAPTER
        assert classified.severity is ErrorSeverity.HIGH
        assert classified.message == "broken"

    def test_empty_message_gets_default(self):
        """An empty message is replaced."""
        classified = classify_failure(RawFailure(message="", exception_type="OSError"))
        assert classified.message == "Format adapter failed"


class TestFactories:
    """Prebuilt classified errors."""

    def test_missing_fields(self):
        failure = missing_fields_error("foundry-vtt", "Foundry VTT")
        assert failure.category is ErrorCategory.VALIDATION
        assert failure.message == "Character data is missing required fields for Foundry VTT conversion"

    def test_unknown_format(self):
        failure = unknown_format_error("pdf")
        assert failure.category is ErrorCategory.OUTPUT
        assert failure.component == "registry"


class TestDiscriminatedUnion:
    """The failure union is discriminated by kind."""

    def test_parse_raw(self):
        """A raw payload parses as RawFailure."""
        failure = failure_adapter.validate_python({"kind": "raw", "message": "boom"})
        assert isinstance(failure, RawFailure)

    def test_parse_classified(self):
        """A classified payload parses as ClassifiedConversionError."""
        failure = failure_adapter.validate_python({
            "kind": "classified",
            "code": "ADAPTER_FAILURE",
            "category": "adapter",
            "severity": "high",
            "message": "boom",
        })
        assert isinstance(failure, ClassifiedConversionError)

    def test_unknown_kind(self):
        """Other kinds are rejected."""
        with pytest.raises(ValidationError):
            failure_adapter.validate_python({"kind": "mystery", "message": "boom"})

    def test_result_round_trip(self):
        """A failed result keeps its failure variant through JSON."""
        result = ConversionResult(success=False, error="boom", failure=unknown_format_error("pdf"))
        restored = ConversionResult.model_validate_json(result.model_dump_json())
        assert isinstance(restored.failure, ClassifiedConversionError)
        assert restored.failure.code == "OUTPUT_UNKNOWN_FORMAT"


class TestExceptions:
    def test_character_file_error_is_export_error(self):
        assert issubclass(CharacterFileError, ExportError)
