"""
Error taxonomy for character conversion.

Failures that cross the core's boundary travel as data inside a
``ConversionResult``. A failure is either a ``RawFailure`` (an exception
captured as-is) or a ``ClassifiedConversionError``; the ``kind`` tag tells
them apart, so callers never have to probe for attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ExportError(Exception):
    """Base class for errors raised outside the pure core (file input, CLI)."""


class CharacterFileError(ExportError):
    """Raised when a character file cannot be read or is not a character record.

    The message is user-facing and says how to fix the problem where possible.
    """


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    COMPUTATION = "computation"
    ADAPTER = "adapter"
    OUTPUT = "output"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RawFailure(BaseModel):
    """An exception captured at an adapter boundary, not yet classified."""
    kind: Literal["raw"] = "raw"
    message: str
    exception_type: str = "Exception"
    component: str = "unknown"

    @classmethod
    def from_exception(cls, exc: BaseException, component: str = "unknown") -> "RawFailure":
        return cls(message=str(exc), exception_type=type(exc).__name__, component=component)


class ClassifiedConversionError(BaseModel):
    """A failure with a machine-readable code, category and severity."""
    kind: Literal["classified"] = "classified"
    code: str = Field(description="Machine-readable error code, e.g. VALIDATION_MISSING_FIELDS")
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    component: str = "unknown"
    recoverable: bool = True


ConversionFailure = Annotated[
    Union[RawFailure, ClassifiedConversionError],
    Field(discriminator="kind"),
]

# Exception types that indicate malformed character data rather than a broken adapter.
_COMPUTATION_EXCEPTIONS = frozenset({"KeyError", "TypeError", "AttributeError", "ValueError", "IndexError"})


def missing_fields_error(component: str, format_name: str) -> ClassifiedConversionError:
    return ClassifiedConversionError(
        code="VALIDATION_MISSING_FIELDS",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.MEDIUM,
        message=f"Character data is missing required fields for {format_name} conversion",
        component=component,
        recoverable=True,
    )


def unknown_format_error(format_id: str) -> ClassifiedConversionError:
    return ClassifiedConversionError(
        code="OUTPUT_UNKNOWN_FORMAT",
        category=ErrorCategory.OUTPUT,
        severity=ErrorSeverity.HIGH,
        message=f"No format adapter registered for '{format_id}'",
        component="registry",
        recoverable=True,
    )


def classify_failure(failure: RawFailure | ClassifiedConversionError) -> ClassifiedConversionError:
    """Turn any failure into a classified one.

    Already-classified failures are returned unchanged.
    """
    if failure.kind == "classified":
        return failure

    if failure.exception_type in _COMPUTATION_EXCEPTIONS:
        return ClassifiedConversionError(
            code="COMPUTATION_MALFORMED_DATA",
            category=ErrorCategory.COMPUTATION,
            severity=ErrorSeverity.HIGH,
            message=failure.message or "Character data could not be processed",
            component=failure.component,
            recoverable=False,
        )

    return ClassifiedConversionError(
        code="ADAPTER_FAILURE",
        category=ErrorCategory.ADAPTER,
        severity=ErrorSeverity.HIGH,
        message=failure.message or "Format adapter failed",
        component=failure.component,
        recoverable=True,
    )
