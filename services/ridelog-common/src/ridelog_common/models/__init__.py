from ridelog_common.models.pydantic import ActivityStatus
from ridelog_common.models.pydantic import ActivityRecord
from ridelog_common.models.pydantic import FitRecord
from ridelog_common.models.pydantic import FitLap
from ridelog_common.models.pydantic import FitSession
from ridelog_common.models.pydantic import FitActivity
from ridelog_common.models.pydantic import DecodedActivity
from ridelog_common.models.pydantic import ActivityPoint
from ridelog_common.models.pydantic import ActivityData

from ridelog_common.models.sqlalchemy import Base
from ridelog_common.models.sqlalchemy import Activity

__all__ = [
    'ActivityStatus',
    'ActivityRecord',
    'FitRecord',
    'FitLap',
    'FitSession',
    'FitActivity',
    'DecodedActivity',
    'ActivityPoint',
    'ActivityData',
    'Base',
    'Activity',
]
