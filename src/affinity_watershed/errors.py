"""Exception taxonomy for the affinity watershed pipeline.

Every error aborts the current run. There is no partial-result mode, so
callers either catch ``WatershedError`` at the outer boundary (the CLI does)
or let it propagate.
"""


class WatershedError(Exception):
    """Base class for all pipeline errors."""


class ShapeMismatch(WatershedError, ValueError):
    """Raised when array shapes are inconsistent (e.g. axis count != 3)."""


class EmptyVolume(WatershedError, ValueError):
    """Raised when the volume (or an input slice directory) holds no voxels."""


class InvalidThreshold(WatershedError, ValueError):
    """Raised for t_low > t_high, non-finite thresholds or a negative min_size."""


class MalformedAffinity(WatershedError, ValueError):
    """Raised when the affinity graph contains NaN or infinite weights."""


class LabelConsistencyViolation(WatershedError, RuntimeError):
    """Internal invariant failure, e.g. an edge referencing a retired label.

    This indicates a defect in the pipeline, not a user error.
    """


__all__ = [
    "WatershedError",
    "ShapeMismatch",
    "EmptyVolume",
    "InvalidThreshold",
    "MalformedAffinity",
    "LabelConsistencyViolation",
]
