# src/lutify/config.py
#
# JSON render configs, so a grading session can be replayed without prompts:
#
#   {
#     "lut": "Kodak2383.cube",
#     "strength": 80,
#     "exposure": 0.25,
#     "contrast": 0.1,
#     "saturation": -0.2,
#     "temperature": 0.3,
#     "tint": 0,
#     "output": "graded.png",
#     "workers": 4,
#     "preview_size": 512
#   }
#
# Every key is optional. Grading values are clamped to the slider ranges in
# presets.py on the way in. The other keys are type-checked by
# check_session_keys.

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .pipeline import RenderParams
from .presets import PARAMETERS_BY_NAME, clamp_value

logger = logging.getLogger(__name__)

PARAM_NAMES = tuple(f.name for f in fields(RenderParams))


def load_config(path: Path) -> dict:
    """Load a JSON config file and return it as a dict."""
    try:
        with open(path) as f:
            cfg = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config {path} is not valid JSON: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config {path} must hold a JSON object")
    return cfg


def save_config(path: Path, cfg: dict) -> None:
    """Save the current session config to a JSON file."""
    with open(path, "w") as f:
        json.dump(cfg, f, indent=2)


def clamp_params(params: RenderParams) -> RenderParams:
    """Returns a copy of `params` with every field inside its slider range."""
    values = {}
    for name in PARAM_NAMES:
        raw = getattr(params, name)
        values[name] = clamp_value(name, raw)
        if values[name] != raw:
            logger.warning(
                "%s %s is outside [%s, %s]; clamped to %s",
                PARAMETERS_BY_NAME[name]["label"],
                raw,
                PARAMETERS_BY_NAME[name]["min"],
                PARAMETERS_BY_NAME[name]["max"],
                values[name],
            )
    return RenderParams(**values)


def params_from_config(cfg: dict, overrides: Optional[dict] = None) -> RenderParams:
    """
    Builds clamped RenderParams from a config dict. Keys missing from the
    config keep their defaults; non-None entries in `overrides` win.
    """
    values = {name: cfg[name] for name in PARAM_NAMES if name in cfg}
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"'{name}' must be a number, got {value!r}")

    return clamp_params(RenderParams(**{k: float(v) for k, v in values.items()}))


def check_session_keys(cfg: dict) -> None:
    """
    Raises ConfigError when the non-grading keys have the wrong type:
    lut and output must be strings, workers and preview_size integers >= 1.
    """
    for name in ("lut", "output"):
        value = cfg.get(name)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"'{name}' must be a path string, got {value!r}")
    for name in ("workers", "preview_size"):
        value = cfg.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"'{name}' must be a whole number >= 1, got {value!r}")


def config_from_session(
    params: RenderParams,
    lut: Optional[str] = None,
    output: Optional[str] = None,
    workers: Optional[int] = None,
    preview_size: Optional[int] = None,
) -> dict:
    cfg: dict = {}
    if lut is not None:
        cfg["lut"] = lut
    cfg.update(asdict(params))
    if output is not None:
        cfg["output"] = output
    if workers is not None:
        cfg["workers"] = workers
    if preview_size is not None:
        cfg["preview_size"] = preview_size
    return cfg
