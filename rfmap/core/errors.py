from __future__ import annotations


class RFMapError(Exception):
    """Base class for errors raised by rfmap."""


class DimensionMismatchError(RFMapError, ValueError):
    """Input length does not match the configured domain size."""


class MalformedStreamError(RFMapError, ValueError):
    """A token stream could not be decoded into transformer state."""


class InvalidParameterError(RFMapError, ValueError):
    """A size or gamma value was rejected by a setter."""
