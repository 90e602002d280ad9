from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class ActivityStatus(str, Enum):
    UPLOADED = "Uploaded"
    PROCESSED = "Processed"
    ERROR = "Error"

class ActivityRecord(BaseModel):
    """Activity document as kept in the document store.

    Field names on the wire use the document store's camelCase keys, the
    Python attributes are snake_case.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: Optional[ActivityStatus] = None
    fit_file: Optional[str] = Field(default=None, alias="fitFile")
    source_file: Optional[str] = Field(default=None, alias="sourceFile")
    timestamp: Optional[datetime] = None
    distance: Optional[float] = None
    average_power: Optional[float] = Field(default=None, alias="averagePower")
    average_speed: Optional[float] = Field(default=None, alias="averageSpeed")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    attempts: int = 0
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def is_processed(self) -> bool:
        return self.status == ActivityStatus.PROCESSED

class FitRecord(BaseModel):
    """One sampled data point. Every sensor reading is optional."""
    model_config = ConfigDict(extra="allow")

    timestamp: Optional[datetime] = None
    elapsed_time: Optional[float] = None
    distance: Optional[float] = None
    power: Optional[float] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    cadence: Optional[float] = None

class FitLap(BaseModel):
    model_config = ConfigDict(extra="allow")

    start_time: Optional[datetime] = None
    total_elapsed_time: Optional[float] = None
    total_distance: Optional[float] = None
    records: List[FitRecord] = []

class FitSession(BaseModel):
    model_config = ConfigDict(extra="allow")

    start_time: Optional[datetime] = None
    total_elapsed_time: Optional[float] = None
    avg_speed: Optional[float] = None
    avg_cadence: Optional[float] = None
    avg_power: Optional[float] = None
    total_distance: Optional[float] = None
    total_ascent: Optional[float] = None
    total_descent: Optional[float] = None
    num_laps: Optional[int] = None
    laps: List[FitLap] = []

class FitActivity(BaseModel):
    model_config = ConfigDict(extra="allow")

    timestamp: Optional[datetime] = None
    sessions: List[FitSession]

class DecodedActivity(BaseModel):
    """Top level of a decoded FIT file, as stored in the converted artifact."""
    model_config = ConfigDict(extra="allow")

    activity: FitActivity

class ActivityPoint(BaseModel):
    """A record flattened out of its lap, tagged with its 1-based lap number."""
    lap: int
    timestamp: Optional[datetime] = None
    distance: Optional[float] = None
    power: Optional[float] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    cadence: Optional[float] = None

class ActivityData(BaseModel):
    """Time series returned to clients for one activity."""
    start_time: Optional[datetime] = None
    total_elapsed_time: Optional[float] = None
    avg_speed: Optional[float] = None
    avg_cadence: Optional[float] = None
    avg_power: Optional[float] = None
    lap_count: int
    session_count: int = 1
    total_distance: Optional[float] = None
    total_ascent: Optional[float] = None
    total_descent: Optional[float] = None
    points: List[ActivityPoint] = []
