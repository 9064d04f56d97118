"""Shared runtime state and typed settings for the orchestrator."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "python"


@dataclass(frozen=True)
class ProcessingSettings:
    """Tunables read once from the configuration manager."""

    default_language: str = DEFAULT_LANGUAGE
    max_tokens: int = 4096
    temperature: float = 0.7
    error_max_tokens: int = 1000
    error_temperature: float = 0.2

    @classmethod
    def from_config(cls, config_manager) -> "ProcessingSettings":
        """Build settings from a ConfigManager."""
        return cls(
            default_language=config_manager.get("processing", "default_language", DEFAULT_LANGUAGE),
            max_tokens=int(config_manager.get("llm", "max_tokens", 4096)),
            temperature=float(config_manager.get("llm", "temperature", 0.7)),
            error_max_tokens=int(config_manager.get("llm", "error_max_tokens", 1000)),
            error_temperature=float(config_manager.get("llm", "error_temperature", 0.2)),
        )


class AppState:
    """Credits, language preference and UI readiness.

    The orchestrator is the authoritative owner of the credit counter; the UI
    only receives copies through credits-updated events.
    """

    def __init__(self, credits: int = 0, language: Optional[str] = None, ready: bool = False):
        if credits < 0:
            raise ValueError("credits must be non-negative")
        self._credits = credits
        self._language = language
        self._ready = asyncio.Event()
        if ready:
            self._ready.set()

    @property
    def credits(self) -> int:
        return self._credits

    def set_credits(self, credits: int) -> int:
        if credits < 0:
            raise ValueError("credits must be non-negative")
        self._credits = credits
        return self._credits

    def consume_credit(self) -> int:
        """Take one credit for a completed pipeline and return the remaining count."""
        if self._credits > 0:
            self._credits -= 1
        return self._credits

    @property
    def language(self) -> Optional[str]:
        return self._language

    @language.setter
    def language(self, value: Optional[str]) -> None:
        self._language = value.strip().lower() if value and value.strip() else None

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def mark_ready(self) -> None:
        if not self._ready.is_set():
            logger.info("UI reported ready")
            self._ready.set()

    async def wait_ready(self) -> None:
        await self._ready.wait()
