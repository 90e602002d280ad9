"""Common models and storage for the ridelog activity services."""

from ridelog_common.models import (
    ActivityStatus,
    ActivityRecord,
    DecodedActivity,
    ActivityPoint,
    ActivityData,
)
from ridelog_common.errors import (
    RidelogError,
    FitDecodeError,
    ArtifactError,
    DocumentNotFoundError,
    BlobNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    'ActivityStatus',
    'ActivityRecord',
    'DecodedActivity',
    'ActivityPoint',
    'ActivityData',
    'RidelogError',
    'FitDecodeError',
    'ArtifactError',
    'DocumentNotFoundError',
    'BlobNotFoundError',
]
