"""Pipeline domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...models import Job, JobNote
from .stages import stage_label

JOB_SOURCES = ("referral", "yelp", "instagram", "facebook", "website", "repeat", "other")


def _validate_source(v):
    if v is not None and v not in JOB_SOURCES:
        raise ValueError(f"source must be one of: {', '.join(JOB_SOURCES)}")
    return v


class JobCreate(BaseModel):
    """Schema for creating a job"""

    title: str = Field(..., min_length=1, max_length=255)
    customerName: Optional[str] = None
    stage: Optional[str] = None
    valueEstimated: float = 0
    valueContracted: float = 0
    source: Optional[str] = "other"
    color: Optional[str] = None
    assignedToId: Optional[int] = None
    note: Optional[str] = None

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        return _validate_source(v)


class JobUpdate(BaseModel):
    """
    Schema for updating a job's descriptive fields.
    Stage, schedule and archive flags change only through their own endpoints.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    customerName: Optional[str] = None
    valueEstimated: Optional[float] = None
    valueContracted: Optional[float] = None
    source: Optional[str] = None
    color: Optional[str] = None
    assignedToId: Optional[int] = None
    estimateAmount: Optional[float] = None
    estimateSentAt: Optional[datetime] = None
    installer: Optional[str] = None
    crewNotes: Optional[str] = None

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        return _validate_source(v)


class MoveStageRequest(BaseModel):
    toStage: str
    note: Optional[str] = None


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1)


class NoteResponse(BaseModel):
    id: int
    content: str
    createdAt: Optional[datetime] = None
    createdById: Optional[int] = None
    isStageChange: bool = False
    isScheduleChange: bool = False
    isAppointment: bool = False


class RecurrenceSchema(BaseModel):
    type: str = "none"
    interval: int = Field(1, ge=1)
    count: int = Field(10, ge=1)

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in ("none", "daily", "weekly", "monthly", "yearly"):
            raise ValueError("recurrence type must be none, daily, weekly, monthly or yearly")
        return v


class ScheduleResponse(BaseModel):
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    installer: Optional[str] = None
    crewNotes: Optional[str] = None
    recurrence: RecurrenceSchema = RecurrenceSchema()


class CalendarSyncResponse(BaseModel):
    googleEventId: Optional[str] = None
    calendarStatus: str = "none"
    lastSyncedAt: Optional[datetime] = None


class JobResponse(BaseModel):
    """Schema for job response"""

    id: int
    publicId: str
    title: str
    customerName: Optional[str] = None
    stage: str
    stageLabel: str
    valueEstimated: float
    valueContracted: float
    source: Optional[str] = None
    color: str
    assignedToId: Optional[int] = None
    estimateSentAt: Optional[datetime] = None
    schedule: ScheduleResponse
    calendar: CalendarSyncResponse
    isArchived: bool
    archivedAt: Optional[datetime] = None
    isDeadEstimate: bool
    movedToDeadEstimateAt: Optional[datetime] = None
    notes: list[NoteResponse] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    totalPages: int
    currentPage: int
    total: int


class PipelineSummaryItem(BaseModel):
    stage: str
    label: str
    count: int
    totalValue: float


class JobsByMonth(BaseModel):
    year: int
    month: int
    monthName: str
    jobs: list[JobResponse]


class DeadEstimateSweepResponse(BaseModel):
    message: str
    count: int
    jobIds: list[int]
    advancedToSent: int = 0
    errors: list[dict] = []


def serialize_note(note: JobNote) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        content=note.content,
        createdAt=note.created_at,
        createdById=note.created_by_id,
        isStageChange=bool(note.is_stage_change),
        isScheduleChange=bool(note.is_schedule_change),
        isAppointment=bool(note.is_appointment),
    )


def serialize_job(job: Job, include_notes: bool = True) -> JobResponse:
    return JobResponse(
        id=job.id,
        publicId=job.public_id,
        title=job.title,
        customerName=job.customer_name,
        stage=job.stage,
        stageLabel=stage_label(job.stage),
        valueEstimated=job.value_estimated or 0,
        valueContracted=job.value_contracted or 0,
        source=job.source,
        color=job.color or "#1976D2",
        assignedToId=job.assigned_to_id,
        estimateSentAt=job.estimate_sent_at,
        schedule=ScheduleResponse(
            startDate=job.schedule_start,
            endDate=job.schedule_end,
            installer=job.installer,
            crewNotes=job.crew_notes,
            recurrence=RecurrenceSchema(
                type=job.recurrence_type or "none",
                interval=job.recurrence_interval or 1,
                count=job.recurrence_count or 10,
            ),
        ),
        calendar=CalendarSyncResponse(
            googleEventId=job.google_event_id,
            calendarStatus=job.calendar_status or "none",
            lastSyncedAt=job.calendar_synced_at,
        ),
        isArchived=bool(job.is_archived),
        archivedAt=job.archived_at,
        isDeadEstimate=bool(job.is_dead_estimate),
        movedToDeadEstimateAt=job.moved_to_dead_estimate_at,
        notes=[serialize_note(n) for n in job.notes] if include_notes else [],
        createdAt=job.created_at,
        updatedAt=job.updated_at,
    )
