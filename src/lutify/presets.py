# src/lutify/presets.py
#
# Ranges for the six grading controls, as exposed by the editor sliders.
#
# Each entry is a dict with:
#   name         the RenderParams field it drives
#   label        shown in prompts and tables
#   min / max    the slider range; values are clamped to it before rendering
#   step         slider resolution
#   default      value after "Reset Adjustments"
#   unit         suffix for display
#   description  what moving the slider does
#
# The pipeline itself never range-checks; these are the caller-side limits.

PARAMETERS: list[dict] = [
    {
        "name": "strength",
        "label": "LUT Strength",
        "min": 0.0,
        "max": 100.0,
        "step": 1.0,
        "default": 100.0,
        "unit": "%",
        "description": "How much of the LUT look is mixed over the original. "
        "0 shows the photo untouched, 100 shows the full LUT.",
    },
    {
        "name": "exposure",
        "label": "Exposure",
        "min": -2.0,
        "max": 2.0,
        "step": 0.01,
        "default": 0.0,
        "unit": " stops",
        "description": "Multiplies the colour by 2^exposure after the LUT.",
    },
    {
        "name": "contrast",
        "label": "Contrast",
        "min": -1.0,
        "max": 1.0,
        "step": 0.01,
        "default": 0.0,
        "unit": "",
        "description": "Spreads (positive) or flattens (negative) tones around mid grey.",
    },
    {
        "name": "saturation",
        "label": "Saturation",
        "min": -1.0,
        "max": 1.0,
        "step": 0.01,
        "default": 0.0,
        "unit": "",
        "description": "-1 is fully monochrome; positive values push colours "
        "away from their Rec.601 luma.",
    },
    {
        "name": "temperature",
        "label": "Temperature",
        "min": -1.0,
        "max": 1.0,
        "step": 0.01,
        "default": 0.0,
        "unit": "",
        "description": "Positive warms (more red, less blue), negative cools.",
    },
    {
        "name": "tint",
        "label": "Tint",
        "min": -1.0,
        "max": 1.0,
        "step": 0.01,
        "default": 0.0,
        "unit": "",
        "description": "Positive shifts toward green, negative toward magenta.",
    },
]

PARAMETERS_BY_NAME: dict[str, dict] = {p["name"]: p for p in PARAMETERS}


def clamp_value(name: str, value: float) -> float:
    """Clamps `value` to the slider range of parameter `name`."""
    param = PARAMETERS_BY_NAME[name]
    return min(max(float(value), param["min"]), param["max"])


def format_value(name: str, value: float) -> str:
    """Renders a parameter value the way the editor labels it."""
    param = PARAMETERS_BY_NAME[name]
    if param["step"] >= 1:
        return f"{value:.0f}{param['unit']}"
    return f"{value:+.2f}{param['unit']}"
