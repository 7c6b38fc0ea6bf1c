"""
StripMaker — Error taxonomy.

Every failure the pipeline reports to a user is one of these. They are caught
at the operation boundary (one generation run, one panel redraw, one export)
and carried on a snapshot or export result instead of propagating.
"""


class StripMakerError(Exception):
    """Base class for all user-facing pipeline failures."""


class ValidationError(StripMakerError):
    """Bad input caught before any backend call (e.g. an empty prompt)."""


class BackendError(StripMakerError):
    """Transport failure or missing/malformed payload from the AI backend."""


class GenerationError(BackendError):
    """Script came back over the wire but does not match the panel schema."""


class CompositionError(StripMakerError):
    """A panel image could not be loaded, so the composite cannot be drawn."""


class ConfigError(StripMakerError):
    """Startup configuration is missing or invalid."""


class StorageError(StripMakerError):
    """The history store could not be written."""
