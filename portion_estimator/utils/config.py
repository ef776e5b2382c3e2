"""Lightweight configuration loader for the portion estimator.

- Prefers JSON config to avoid extra dependencies
- Optionally supports YAML if PyYAML is available
- Provides defaults matching the documented estimation constants
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULTS: Dict[str, Any] = {
    "detector": {
        "enabled": True,
        "score_threshold": 0.5,
        "max_detections": 20,
        "device": None,
    },
    "depth": {
        "enabled": True,
        "model_type": "MiDaS_small",  # or 'DPT_Large', 'DPT_Hybrid'
        "device": None,
        "depth_scale_cm": 10.0,
        "min_depth_cm": 0.5,
    },
    "estimation": {
        "pixel_to_cm": 0.1,
        "min_reference_confidence": 0.0,
        "reference_confidence_factor": 0.9,
        "depth_confidence": 0.85,
        "heuristic_confidence": 0.6,
        "heuristic_volume_scale": 10.0,
    },
    "density": {
        # JSON file persisted after each calibration; null keeps the table in memory
        "table_path": None,
    },
}


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = _deep_update(base[k], v)  # type: ignore[index]
        else:
            base[k] = v
    return base


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        import yaml  # type: ignore
    except ImportError as exc:
        warnings.warn(
            f"PyYAML not installed; cannot parse YAML config '{path}'. Using defaults. ({exc})"
        )
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_config(
    path: Optional[str | Path] = None, search_cwd: bool = False
) -> Dict[str, Any]:
    """Load configuration from a file (JSON preferred; YAML optional) and merge with defaults.

    Lookup order:
    1) Explicit path if provided
    2) With ``search_cwd``, ./config.json in the working directory if present
    3) With ``search_cwd``, ./config.yaml or ./config.yml if present
    4) Defaults
    """
    merged = json.loads(json.dumps(DEFAULTS))  # deep copy via JSON round-trip

    candidates: list[Path] = []
    if path is not None:
        candidates.append(Path(path))
    if search_cwd:
        candidates.extend([Path("config.json"), Path("config.yaml"), Path("config.yml")])

    chosen: Optional[Path] = next((p for p in candidates if p.exists()), None)
    if not chosen:
        return merged

    try:
        if chosen.suffix.lower() == ".json":
            data = _load_json(chosen)
        elif chosen.suffix.lower() in {".yaml", ".yml"}:
            data = _load_yaml(chosen)
        else:
            warnings.warn(f"Unsupported config format: {chosen.suffix}. Using defaults.")
            data = {}
    except Exception as exc:
        warnings.warn(f"Failed to load config from {chosen}: {exc}. Using defaults.")
        data = {}

    if isinstance(data, dict):
        _deep_update(merged, data)
    else:
        warnings.warn(f"Config at {chosen} is not a mapping. Using defaults.")

    return merged


__all__ = ["DEFAULTS", "load_config"]
