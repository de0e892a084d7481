from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

_CATALOG_CACHE: dict[str, Any] | None = None
_CATALOG_PATH = Path(__file__).resolve().parents[2] / "config" / "catalog.yaml"


def get_catalog() -> dict[str, Any]:
    """Load the static catalog from repo-level config/catalog.yaml and cache it."""
    global _CATALOG_CACHE

    if _CATALOG_CACHE is not None:
        return _CATALOG_CACHE

    if not _CATALOG_PATH.exists():
        raise RuntimeError(
            f"Catalog not found at '{_CATALOG_PATH}'. "
            "Expected file: config/catalog.yaml"
        )

    try:
        raw = _CATALOG_PATH.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read catalog '{_CATALOG_PATH}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in catalog '{_CATALOG_PATH}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid catalog '{_CATALOG_PATH}': expected a top-level mapping.")

    _CATALOG_CACHE = parsed
    return _CATALOG_CACHE


def get_catalog_value(path: str, default: Any = None) -> Any:
    """Get nested catalog value using dot path notation, e.g. 'plans.scan_limits.FREE'."""
    if not path:
        return default

    current: Any = get_catalog()
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current


def get_catalog_list(path: str) -> list[str]:
    value = get_catalog_value(path, [])
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]
