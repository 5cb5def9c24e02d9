"""Environment driven settings for the citechat service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from citechat.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

API_KEY_ENV_KEYS: tuple[str, str, str] = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "API_KEY",
)

DEFAULT_MODEL = "gemini-2.5-flash"

# Topic id -> display label.
DEFAULT_TOPICS: dict[str, str] = {
    "shokurit": "Tempered glass (Securit)",
    "doubleSidedTape": "Double-sided glazing tape",
    "glazing": "Glazing bead installation",
    "cnc": "CNC machining",
    "doubleGlazing": "Double glazing units",
}

MISSING_API_KEY_MESSAGE = "API key not found. Please configure the application correctly."


def _float_from_env(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; ignoring", name, value)
        return None


def _api_key_from_env() -> Optional[str]:
    for key in API_KEY_ENV_KEYS:
        value = os.getenv(key)
        if value and value.strip():
            return value.strip()
    return None


@dataclass(slots=True)
class Settings:
    """Resolved runtime configuration."""

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    temperature: Optional[float] = None
    topics: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_TOPICS))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=_api_key_from_env(),
            model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL,
            data_dir=Path(os.getenv("CITECHAT_DATA_DIR", "data")),
            log_dir=Path(os.getenv("CITECHAT_LOG_DIR", "logs")),
            temperature=_float_from_env("LLM_TEMPERATURE"),
        )

    def require_api_key(self) -> str:
        """Return the API key or raise :class:`ConfigurationError`."""

        if not self.api_key:
            raise ConfigurationError(MISSING_API_KEY_MESSAGE)
        return self.api_key


__all__ = ["DEFAULT_MODEL", "DEFAULT_TOPICS", "MISSING_API_KEY_MESSAGE", "Settings"]
