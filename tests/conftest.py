"""Shared pytest fixtures for lutify tests."""
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pytest

from lutify.atlas import Atlas, build_atlas
from lutify.parser import Lattice, identity_lattice


def _format_cube(
    size: int,
    samples,
    title: Optional[str] = None,
    domain_min: Optional[str] = None,
    domain_max: Optional[str] = None,
    header: Optional[list] = None,
) -> str:
    lines = ["# generated for tests"]
    if title is not None:
        lines.append(f'TITLE "{title}"')
    lines.extend(header or [])
    lines.append(f"LUT_3D_SIZE {size}")
    if domain_min is not None:
        lines.append(f"DOMAIN_MIN {domain_min}")
    if domain_max is not None:
        lines.append(f"DOMAIN_MAX {domain_max}")
    lines.append("")
    for r, g, b in samples:
        lines.append(f"{r:.6f} {g:.6f} {b:.6f}")
    return "\n".join(lines) + "\n"


def _identity_rows(size: int) -> list:
    """Identity samples in .cube order: red fastest, blue slowest."""
    step = 1.0 / (size - 1)
    return [
        (r * step, g * step, b * step)
        for b in range(size)
        for g in range(size)
        for r in range(size)
    ]


@pytest.fixture
def make_cube() -> Callable[..., str]:
    """Build .cube text from a size and an iterable of (r, g, b) rows."""
    return _format_cube


@pytest.fixture
def identity_rows() -> Callable[[int], list]:
    return _identity_rows


@pytest.fixture
def identity2_text() -> str:
    """A 2-point identity LUT: the 8 corners of the unit cube."""
    return _format_cube(2, _identity_rows(2), title="Identity 2")


@pytest.fixture
def identity2_file(tmp_path, identity2_text) -> Path:
    path = tmp_path / "identity2.cube"
    path.write_text(identity2_text)
    return path


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(2383)


@pytest.fixture
def random_lattice(rng) -> Callable[[int], Lattice]:
    """Random lattice of a given size, values in [0, 1]."""

    def factory(size: int) -> Lattice:
        return Lattice(size=size, samples=rng.uniform(0.0, 1.0, (size**3, 3)))

    return factory


@pytest.fixture(scope="session")
def identity_atlas() -> Atlas:
    """Atlas built from a 64-point identity lattice (direct path)."""
    return build_atlas(identity_lattice(64))


@pytest.fixture(scope="session")
def inverted_atlas() -> Atlas:
    """Atlas of a 33-point LUT mapping every colour to its complement."""
    lattice = identity_lattice(33)
    return build_atlas(Lattice(size=33, samples=1.0 - lattice.samples))
