"""
Exceptions raised at the analytics API boundary.

Only programming errors raise. Sparse or missing business data never does:
analyses return ``None`` (or an empty forecast) instead, so callers always get
whatever subset of results the snapshot supports.
"""

from __future__ import annotations


class InvalidConfigurationError(ValueError):
    """Raised when a caller passes an unusable engine parameter.

    Examples: a non-positive forecast horizon, a seasonal table that is not
    12 finite positive factors, or confidence bounds outside ``[0, 1]``.
    """


class SnapshotLoadError(RuntimeError):
    """Raised when a snapshot file cannot be read or fails validation.

    Attributes:
        path: The file that failed to load.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot load snapshot '{path}': {reason}")
