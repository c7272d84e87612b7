"""Exceptions raised by the wbox converter."""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every failure that aborts a conversion run."""


class ConfigurationError(ConversionError):
    """An input file is missing or cannot be read."""


class ContentError(ConversionError):
    """An input was read but its content is unusable."""


class EmptyPaletteError(ContentError):
    """The palette produced no usable entries."""


class TileResolutionError(ConversionError):
    """A quantized pixel could not be resolved to a known tile id."""


class WriteFailedError(ConversionError):
    """The output artifact could not be written."""
