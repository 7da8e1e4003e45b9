"""Manuelle Bearbeitung eines fertigen Rasters."""

from .request import EditAction, EditRequest, EditTarget, GridSource, PoolSource
from .validator import EditErrorKind, EditRejection, EditResult, EditValidator

__all__ = [
    "EditAction",
    "EditRequest",
    "EditTarget",
    "GridSource",
    "PoolSource",
    "EditErrorKind",
    "EditRejection",
    "EditResult",
    "EditValidator",
]
