"""
Runtime settings for the command-line tool.

Settings come from environment variables, optionally seeded from a ``.env``
file. The conversion core never reads the environment; callers pass the
relevant values in explicitly.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("vtt-export")

ENV_LOG_LEVEL = "VTT_EXPORT_LOG_LEVEL"
ENV_SPELL_SLOT_DEBUG = "VTT_EXPORT_SPELL_SLOT_DEBUG"
ENV_DEFAULT_FORMAT = "VTT_EXPORT_DEFAULT_FORMAT"
ENV_JSON_INDENT = "VTT_EXPORT_JSON_INDENT"

_TRUTHY = {"1", "true", "yes", "on"}


class ExportSettings(BaseModel):
    """Settings for a vtt-export run."""
    log_level: str = Field(default="INFO", description="Root log level name")
    spell_slot_debug: bool = Field(default=False, description="Log every spell slot calculation")
    default_format: str | None = Field(default=None, description="Format id used when none is given")
    json_indent: int = Field(default=2, ge=0, description="Indent for JSON output")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def load_settings(environ: Mapping[str, str] | None = None) -> ExportSettings:
    """Build settings from ``environ``, or from ``os.environ`` after loading
    ``.env`` from the working directory. Variables already set take precedence.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    if environ is None:
        if load_dotenv(Path.cwd() / ".env"):
            logger.debug(".env file loaded")
        environ = os.environ

    values: dict[str, object] = {}
    if environ.get(ENV_LOG_LEVEL):
        values["log_level"] = environ[ENV_LOG_LEVEL]
    if environ.get(ENV_SPELL_SLOT_DEBUG):
        values["spell_slot_debug"] = environ[ENV_SPELL_SLOT_DEBUG].strip().lower() in _TRUTHY
    if environ.get(ENV_DEFAULT_FORMAT):
        values["default_format"] = environ[ENV_DEFAULT_FORMAT].strip()
    if environ.get(ENV_JSON_INDENT):
        values["json_indent"] = environ[ENV_JSON_INDENT]

    return ExportSettings(**values)


def configure_logging(settings: ExportSettings) -> None:
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.spell_slot_debug:
        logging.getLogger("vtt-export.spellcasting").setLevel(logging.DEBUG)
