"""Error types raised by lutify.

Parsing and validation errors are reported once to the immediate caller and
never retried here; re-picking a file is the caller's business.
"""

from typing import Optional


class LutifyError(Exception):
    """Base exception for all lutify errors."""


class ParseError(LutifyError):
    """Malformed .cube text: missing size, bad row count or bad number."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(message)
        self.line_number = line_number


class ValidationError(LutifyError):
    """A parsed lattice failed validation during import."""


class AtlasFormatError(LutifyError):
    """An atlas blob or pixel buffer has the wrong size or shape."""


class ConfigError(LutifyError):
    """A render config file could not be read or has invalid values."""
