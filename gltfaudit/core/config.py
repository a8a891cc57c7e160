from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .diagnostics import fail


SCHEMA_VERSION = "1.0.2"

# Every check starts disabled; a schema file enables the ones it names.
DEFAULT_SCHEMA: Dict[str, Any] = {
    "version": SCHEMA_VERSION,
    "model": {
        "requireBeveledEdges": False,
        "requireManifoldEdges": False,
    },
    "uvs": {
        "requireNotInverted": False,
        "requireNotOverlapping": False,
        "requireRangeZeroToOne": False,
    },
}


def load_schema_file(path: Path) -> Dict[str, Any]:
    data = _load_data(path)
    if not isinstance(data, dict):
        raise fail("E-SCHEMA", "Audit schema must be a JSON object", location=str(path))
    return data


def load_product_file(path: Path) -> Dict[str, Any]:
    data = _load_data(path)
    if not isinstance(data, dict):
        raise fail("E-PRODUCT", "Product info must be a JSON object", location=str(path))
    return data


def normalize_schema_data(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(DEFAULT_SCHEMA))
    return _deep_merge(merged, data)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_data(path: Path) -> Any:
    if path.suffix in {".yaml", ".yml"}:
        import yaml  # type: ignore

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    if path.suffix == ".toml":
        try:
            import tomllib
        except ImportError:  # pragma: no cover - python <3.11
            import tomli as tomllib  # type: ignore

        with path.open("rb") as handle:
            return tomllib.load(handle)
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
