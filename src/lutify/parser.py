# src/lutify/parser.py
#
# Decodes the text .cube grammar into a Lattice:
#
#   # comment
#   TITLE "name"
#   LUT_3D_SIZE <int>
#   DOMAIN_MIN <f> <f> <f>
#   DOMAIN_MAX <f> <f> <f>
#   <size^3 rows of "<f> <f> <f>">
#
# Rows are stored in file order. The file order *is* the linear order
# (b * size + g) * size + r, i.e. red varies fastest and blue slowest.

import logging
import math
from dataclasses import dataclass
from typing import Optional

import colour
import numpy as np

from .data import CONVENTIONAL_SIZES, DEFAULT_DOMAIN_MAX, DEFAULT_DOMAIN_MIN
from .errors import ParseError, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lattice
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Lattice:
    """
    Decoded LUT: a size^3 grid of colour samples plus its metadata.

    `samples` has shape (size**3, 3). The triple for lattice coordinate
    (r, g, b) is stored at row (b * size + g) * size + r.
    """

    size: int
    samples: np.ndarray
    domain_min: tuple[float, float, float] = DEFAULT_DOMAIN_MIN
    domain_max: tuple[float, float, float] = DEFAULT_DOMAIN_MAX
    title: Optional[str] = None
    comments: tuple[str, ...] = ()

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64).reshape(-1, 3)
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "domain_min", tuple(float(v) for v in self.domain_min))
        object.__setattr__(self, "domain_max", tuple(float(v) for v in self.domain_max))
        object.__setattr__(self, "comments", tuple(self.comments))

    @property
    def table(self) -> np.ndarray:
        """The samples as a (size, size, size, 3) array indexed [b, g, r]."""
        n = self.size
        return self.samples.reshape(n, n, n, 3)

    def sample(self, r: int, g: int, b: int) -> np.ndarray:
        """Returns the colour stored at lattice coordinate (r, g, b)."""
        return self.samples[(b * self.size + g) * self.size + r]

    def to_lut3d(self) -> colour.LUT3D:
        """
        Returns the lattice as a colour-science LUT3D.

        colour indexes its table [r, g, b], so the blue-major table is
        transposed on the way out.
        """
        return colour.LUT3D(
            table=np.ascontiguousarray(self.table.transpose(2, 1, 0, 3)),
            name=self.title or "lutify",
            domain=np.array([self.domain_min, self.domain_max]),
            comments=list(self.comments),
        )


def identity_lattice(size: int, title: Optional[str] = None) -> Lattice:
    """Builds a lattice whose every point maps a colour onto itself."""
    # colour's linear table is indexed [r, g, b]; flip to blue-major.
    table = colour.LUT3D.linear_table(size)
    samples = table.transpose(2, 1, 0, 3).reshape(-1, 3)
    return Lattice(size=size, samples=samples, title=title)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_triple(tokens: list[str]) -> Optional[tuple[float, float, float]]:
    """Three floats, or None when the tokens are not exactly three numbers."""
    if len(tokens) != 3:
        return None
    try:
        return float(tokens[0]), float(tokens[1]), float(tokens[2])
    except ValueError:
        return None


def _is_number(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


def parse_cube(text: str) -> Lattice:
    """
    Parses .cube text into a Lattice.

    Raises ParseError when LUT_3D_SIZE is missing or invalid, when the number
    of data rows is not size^3, or when a data row holds a non-numeric token.
    An unconventional size (not 17, 33 or 64) is logged but accepted.
    """
    size = 0
    domain_min = DEFAULT_DOMAIN_MIN
    domain_max = DEFAULT_DOMAIN_MAX
    title = None
    comments: list[str] = []
    rows: list[tuple[int, list[str]]] = []

    for line_number, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            comments.append(line[1:].strip())
            continue

        tokens = line.split()
        keyword = tokens[0]

        if keyword == "TITLE":
            title = line[len("TITLE"):].strip().strip('"')
        elif keyword == "LUT_3D_SIZE":
            try:
                size = int(tokens[1])
            except (IndexError, ValueError):
                raise ParseError("invalid LUT_3D_SIZE", line_number) from None
        elif keyword == "DOMAIN_MIN":
            values = _parse_triple(tokens[1:])
            if values is not None:
                domain_min = values
        elif keyword == "DOMAIN_MAX":
            values = _parse_triple(tokens[1:])
            if values is not None:
                domain_max = values
        elif len(tokens) == 3 and _is_number(keyword):
            rows.append((line_number, tokens))
        # Anything else (LUT_1D_SIZE, LUT_3D_INPUT_RANGE, vendor keys) is
        # not part of the lattice and is skipped.

    if size == 0:
        raise ParseError("missing size: LUT_3D_SIZE not found")
    if size < 0:
        raise ParseError(f"invalid LUT_3D_SIZE: {size}")

    if size not in CONVENTIONAL_SIZES:
        logger.warning(
            "Unusual LUT size %d (conventional sizes are %s); importing anyway",
            size,
            ", ".join(str(s) for s in CONVENTIONAL_SIZES),
        )

    expected = size**3
    if len(rows) != expected:
        raise ParseError(
            f"data count mismatch: expected {expected} rows, got {len(rows)}"
        )

    samples = np.empty((expected, 3), dtype=np.float64)
    for index, (line_number, tokens) in enumerate(rows):
        try:
            values = [float(t) for t in tokens]
        except ValueError:
            values = None
        # float() also accepts nan and inf, which no colour can hold.
        if values is None or not all(math.isfinite(v) for v in values):
            raise ParseError(
                f"unparsable number in data row: {' '.join(tokens)!r}", line_number
            )
        samples[index] = values

    logger.debug("Parsed %d^3 LUT %r", size, title)
    return Lattice(
        size=size,
        samples=samples,
        domain_min=domain_min,
        domain_max=domain_max,
        title=title,
        comments=comments,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_lattice(lattice: Lattice) -> bool:
    """
    Returns False when the sample count is not size^3 or any domain_min
    component is not strictly below its domain_max. Never raises.
    """
    if lattice.size <= 0 or len(lattice.samples) != lattice.size**3:
        return False
    return all(lo < hi for lo, hi in zip(lattice.domain_min, lattice.domain_max))


def load_lattice(text: str) -> Lattice:
    """Import flow: parse, then reject lattices that fail validation."""
    lattice = parse_cube(text)
    if not validate_lattice(lattice):
        raise ValidationError(
            f"LUT failed validation (domain {lattice.domain_min} -> "
            f"{lattice.domain_max}, {len(lattice.samples)} samples)"
        )
    return lattice
