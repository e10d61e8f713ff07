"""Provider credential lookup.

Each provider declares a primary environment name and a list of alternative
names. The resolver tries them in order, caches values it finds and can
report which names exist without ever exposing a value.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

logger = structlog.get_logger()


ALTERNATIVE_SECRET_NAMES: Dict[str, List[str]] = {
    "CLAUDE_API_KEY": [
        "ANTHROPIC_API_KEY",
        "CLAUDE_KEY",
        "ANTHROPIC_KEY",
        "CLAUDE_SECRET_KEY",
        "ANTHROPIC_SECRET_KEY",
        "CLAUDE_AI_API_KEY",
    ],
    "OPENAI_API_KEY": [
        "OPENAI_KEY",
        "OPENAI_SECRET_KEY",
        "OPENAI_SECRET",
        "OPEN_AI_API_KEY",
        "OPENAI_API_SECRET",
    ],
    "GROK_API_KEY": ["XAI_API_KEY"],
}

# Values that show up in copied .env templates
PLACEHOLDER_VALUES = {"YOUR_API_KEY", "PLACEHOLDER", "None", "changeme"}


@dataclass(frozen=True)
class SecretLookup:
    """Result of resolving one secret."""

    value: Optional[str]
    checked_names: List[str] = field(default_factory=list)
    found_name: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.value is not None


class SecretResolver:
    """Resolves secrets from an environment mapping with caching."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ if environ is not None else os.environ
        self._cache: Dict[str, str] = {}

    def _read(self, name: str) -> Optional[str]:
        value = self._environ.get(name)
        if not value or not value.strip() or value.strip() in PLACEHOLDER_VALUES:
            return None
        return value.strip()

    def resolve(
        self, primary: str, alternatives: Optional[Sequence[str]] = None
    ) -> SecretLookup:
        """Look up ``primary`` then each alternative name in order."""
        if alternatives is None:
            alternatives = ALTERNATIVE_SECRET_NAMES.get(primary, [])
        names = [primary] + [n for n in alternatives if n != primary]

        for name in names:
            cached = self._cache.get(name)
            if cached is not None:
                return SecretLookup(value=cached, checked_names=names, found_name=name)
            value = self._read(name)
            if value is not None:
                self._cache[name] = value
                if name != primary:
                    logger.info("secret_found_under_alternative", name=name)
                return SecretLookup(value=value, checked_names=names, found_name=name)

        logger.warning("secret_not_found", primary=primary, checked=names)
        return SecretLookup(value=None, checked_names=names)

    def diagnostics(
        self, primary: str, alternatives: Optional[Sequence[str]] = None
    ) -> dict:
        """Which of the candidate names exist. Never includes values."""
        if alternatives is None:
            alternatives = ALTERNATIVE_SECRET_NAMES.get(primary, [])
        return {
            "primary_secret_exists": self._read(primary) is not None,
            "checked_alternatives": list(alternatives),
            "found_alternatives": [n for n in alternatives if self._read(n) is not None],
            "cache_size": len(self._cache),
        }

    def clear_cache(self) -> None:
        self._cache.clear()
