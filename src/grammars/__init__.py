"""Grammar profiles: which tree-sitter node types act as classes, functions and bodies.

Profiles are data. ``profiles.json`` holds a file-extension map, a ``default``
profile and per-language overrides that replace individual default entries.
Adding a language is a change to the JSON file, not to the chunker.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Optional

CLASS_COLLAPSER = "class"
FUNCTION_COLLAPSER = "function"

_PROFILE_FIELDS = (
    "comment_types",
    "class_types",
    "function_types",
    "class_body_types",
    "function_declaration_types",
    "function_body_types",
    "brace_body_types",
    "method_container_types",
    "class_container_types",
)


@dataclass(frozen=True)
class GrammarProfile:
    language: str
    comment_types: FrozenSet[str]
    class_types: FrozenSet[str]
    function_types: FrozenSet[str]
    class_body_types: FrozenSet[str]
    function_declaration_types: FrozenSet[str]
    function_body_types: FrozenSet[str]
    brace_body_types: FrozenSet[str]
    method_container_types: FrozenSet[str]
    class_container_types: FrozenSet[str]

    def collapser_for(self, node_type: str) -> Optional[str]:
        """Return which collapsing constructor handles ``node_type``, if any."""
        if node_type in self.class_types:
            return CLASS_COLLAPSER
        if node_type in self.function_types:
            return FUNCTION_COLLAPSER
        return None


def _load_grammar_config() -> tuple[dict[str, str], dict[str, dict[str, list[str]]]]:
    """Load the extension map and raw profile tables from JSON configuration."""
    cfg_path = Path(__file__).with_name("profiles.json")
    with cfg_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    extensions = {str(k).lower(): str(v) for k, v in data.get("extensions", {}).items()}
    profiles_raw = data.get("profiles", {})
    profiles: dict[str, dict[str, list[str]]] = {}
    for language, table in profiles_raw.items():
        profiles[language] = {field: list(types) for field, types in table.items()}
    if "default" not in profiles:
        raise ValueError(f"{cfg_path.name} must define a 'default' profile")
    return extensions, profiles


EXTENSIONS, PROFILE_TABLES = _load_grammar_config()

_PROFILE_CACHE: Dict[str, GrammarProfile] = {}


def get_profile(language: str) -> GrammarProfile:
    """Return the profile for ``language``: the default tables with its overrides applied."""
    key = (language or "").strip().lower()
    cached = _PROFILE_CACHE.get(key)
    if cached is not None:
        return cached

    merged = dict(PROFILE_TABLES["default"])
    merged.update(PROFILE_TABLES.get(key, {}))
    unknown = set(merged) - set(_PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown grammar profile fields for {key!r}: {sorted(unknown)}")

    profile = GrammarProfile(
        language=key,
        **{field: frozenset(merged.get(field, ())) for field in _PROFILE_FIELDS},
    )
    _PROFILE_CACHE[key] = profile
    return profile


def language_for_path(path: str) -> Optional[str]:
    """Map a file path to a grammar name by extension; None when unknown."""
    suffix = Path(path).suffix[1:].lower()
    return EXTENSIONS.get(suffix)


__all__ = [
    "CLASS_COLLAPSER",
    "FUNCTION_COLLAPSER",
    "GrammarProfile",
    "EXTENSIONS",
    "PROFILE_TABLES",
    "get_profile",
    "language_for_path",
]
