"""Exception hierarchy for static map rendering.

Only tile fetch and cache write errors are recovered locally (a missing
tile leaves a gap in the mosaic). Everything else aborts ``render``.
"""


class StaticMapError(Exception):
    """Base class for all errors raised by pystaticmap."""


class ConfigurationError(StaticMapError, ValueError):
    """Map cannot be rendered with the given options or features."""


class TileFetchError(StaticMapError):
    """A single tile could not be downloaded or was not an image."""


class CacheWriteError(StaticMapError):
    """A tile could not be written to the on-disk cache."""


class RasterizationError(StaticMapError):
    """The vector overlay could not be rasterized."""


class CompositionError(StaticMapError):
    """Base layer and overlay could not be merged."""
