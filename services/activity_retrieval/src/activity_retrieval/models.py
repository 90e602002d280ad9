from typing import Any
from pydantic import BaseModel

class ActivityDataRequest(BaseModel):
    # validated by the query so that bad input maps to invalid-argument
    activity: Any = None

class ErrorResponse(BaseModel):
    code: str
    detail: str
