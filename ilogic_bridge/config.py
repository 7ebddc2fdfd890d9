"""Bridge configuration management."""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "ILOGIC_BRIDGE_"


class BridgeSettings(BaseModel):
    """Settings for the rule bridge, read from ``ILOGIC_BRIDGE_*`` variables."""

    LOG_LEVEL: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    DEBUG: bool = Field(False, description="Enable debug logging to a file")
    LOG_FILE: str = Field("ilogic_bridge.log", description="Log file used in debug mode")
    IGNORE_FILE: str = Field(".ilogicignore", description="Name of the scope configuration file")
    RULES_FOLDER: str = Field("ilogic", description="Folder created next to the scope configuration file")
    RULE_EXTENSION: str = Field(".vb", description="Extension of exported rule files")
    MAX_SEARCH_DEPTH: int = Field(10, ge=1, description="Folders inspected when searching for the config file")
    ACTIVE_FALLBACK: bool = Field(
        True, description="Attribute files from unknown folders to the active document"
    )
    DIAGNOSTIC_LIMIT: int = Field(500, ge=1, description="Diagnostics kept in memory")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {value}")
        return level

    @field_validator("RULE_EXTENSION")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Rule extension cannot be empty")
        return value if value.startswith(".") else f".{value}"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "BridgeSettings":
        """Build settings from prefixed environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            BridgeSettings: Validated settings
        """
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)
        values = {
            name: environ[ENV_PREFIX + name]
            for name in cls.model_fields
            if ENV_PREFIX + name in environ
        }
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Get the process-wide settings loaded from the environment."""
    return BridgeSettings.from_env()
