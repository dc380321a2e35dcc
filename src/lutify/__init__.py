"""lutify: .cube LUT parsing, atlas canonicalisation and photo grading."""

from .atlas import Atlas, build_atlas, trilinear_resample
from .errors import AtlasFormatError, ConfigError, LutifyError, ParseError, ValidationError
from .parser import Lattice, identity_lattice, load_lattice, parse_cube, validate_lattice
from .pipeline import RenderParams, apply, render, sample_atlas

__version__ = "0.1.0"

__all__ = [
    "Atlas",
    "AtlasFormatError",
    "ConfigError",
    "Lattice",
    "LutifyError",
    "ParseError",
    "RenderParams",
    "ValidationError",
    "apply",
    "build_atlas",
    "identity_lattice",
    "load_lattice",
    "parse_cube",
    "render",
    "sample_atlas",
    "trilinear_resample",
    "validate_lattice",
]
