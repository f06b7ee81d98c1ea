"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Job
from ..pipeline.schemas import JobResponse, RecurrenceSchema, serialize_job
from .grid import DayCell, GridBlock

RESIZE_EDGES = ("start", "left", "end", "right")


class DropRequest(BaseModel):
    """A bench job dropped onto a calendar day"""

    dropDate: date
    duration: Optional[int] = None


class MoveRequest(BaseModel):
    newStartDate: date


class ResizeRequest(BaseModel):
    edge: str
    boundaryDate: date

    @field_validator("edge")
    @classmethod
    def validate_edge(cls, v):
        if v not in RESIZE_EDGES:
            raise ValueError(f"edge must be one of: {', '.join(RESIZE_EDGES)}")
        return v


class ScheduleUpdateRequest(BaseModel):
    """Explicit schedule from the event modal"""

    startDate: date
    endDate: date
    installer: Optional[str] = None
    crewNotes: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    color: Optional[str] = None
    recurrence: Optional[RecurrenceSchema] = None


class ScheduleRange(BaseModel):
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None


class ScheduleChangeResponse(BaseModel):
    """Result of a schedule change; ``previous`` is what to restore if the client rolls back"""

    job: JobResponse
    previous: ScheduleRange
    current: ScheduleRange


class BenchJobResponse(BaseModel):
    id: int
    title: str
    customerName: Optional[str] = None
    stage: str
    valueEstimated: float
    color: str
    installer: Optional[str] = None
    suggestedDuration: int


class ReconcileResponse(BaseModel):
    count: int
    jobIds: list[int]


class GridResponse(BaseModel):
    year: int
    month: int
    days: list[DayCell]
    blocks: list[GridBlock]


def schedule_range(start: Optional[datetime], end: Optional[datetime]) -> ScheduleRange:
    return ScheduleRange(startDate=start, endDate=end)


def serialize_change(change: dict) -> ScheduleChangeResponse:
    job: Job = change["job"]
    return ScheduleChangeResponse(
        job=serialize_job(job, include_notes=False),
        previous=schedule_range(*change["previous"]),
        current=schedule_range(*change["current"]),
    )
