from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional

from ridelog_common.models import ActivityStatus

class ObjectFinalizedEvent(BaseModel):
    """Storage notification sent when an object has been written."""
    name: str
    bucket: str

class EventAccepted(BaseModel):
    name: str
    accepted: bool

class ActivityStatusResponse(BaseModel):
    activity_id: str
    status: Optional[ActivityStatus] = None
    error_message: Optional[str] = None
    attempts: int = 0
    fit_file: Optional[str] = None
    last_updated: Optional[datetime] = None

class ReconcileReport(BaseModel):
    scanned: int = 0
    reprocessed: List[str] = []
    dead_lettered: List[str] = []
    skipped: int = 0
