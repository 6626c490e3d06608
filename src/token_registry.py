"""Simple registry for token calculator factories."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from Calculators.TokenCalculator import TokenCalculator

CalculatorFactory = Callable[..., "TokenCalculator"]

DEFAULT_CALCULATOR = "tiktoken"

logger = logging.getLogger(__name__)

_REGISTRY: Dict[str, CalculatorFactory] = {}


def register_token_calculator(name: str, factory: CalculatorFactory) -> None:
    key = _normalize(name)
    if not key:
        raise ValueError("Calculator name must be non-empty")
    if not callable(factory):
        raise TypeError("Calculator factory must be callable")
    _REGISTRY[key] = factory


def unregister_token_calculator(name: str) -> None:
    key = _normalize(name)
    _REGISTRY.pop(key, None)


def get_token_calculator(name: str) -> Optional[CalculatorFactory]:
    key = _normalize(name)
    return _REGISTRY.get(key)


def available_token_calculators() -> Iterable[str]:
    return sorted(_REGISTRY.keys())


def create_token_calculator(name: Optional[str] = None, **kwargs: Any) -> "TokenCalculator":
    key = _normalize(name or DEFAULT_CALCULATOR) or DEFAULT_CALCULATOR
    factory = get_token_calculator(key)
    if factory is None:
        raise ValueError(f"Unsupported token calculator '{name}'")
    return factory(**kwargs)


def _normalize(name: str) -> str:
    return (name or "").strip().lower()


def _tiktoken_factory(**kwargs: Any) -> "TokenCalculator":
    from Calculators.TiktokenCalculator import TiktokenCalculator

    return TiktokenCalculator(encoding=kwargs.get("encoding"))


def _characters_factory(**kwargs: Any) -> "TokenCalculator":
    from Calculators.CharacterCalculator import CharacterCalculator

    encoding = kwargs.pop("encoding", None)
    if encoding:
        logger.debug("Character calculator ignores encoding %s", encoding)
    return CharacterCalculator()


for _alias in ("tiktoken", "openai"):
    register_token_calculator(_alias, _tiktoken_factory)
for _alias in ("chars", "characters"):
    register_token_calculator(_alias, _characters_factory)


__all__ = [
    "DEFAULT_CALCULATOR",
    "register_token_calculator",
    "unregister_token_calculator",
    "get_token_calculator",
    "available_token_calculators",
    "create_token_calculator",
]
