"""
Domain error types for the job pipeline and scheduler.

All errors inherit from PipelineError and carry the HTTP status the API
reports them with. None of them are fatal: the caller reports the condition
and prior state is left untouched.
"""


class PipelineError(Exception):
    """Base exception for all pipeline and scheduling failures."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(PipelineError):
    """Raised when a job or appointment id does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class TerminalStageError(PipelineError):
    """Raised when a job has no successor stage."""

    status_code = 409

    def __init__(self, job_id, stage: str):
        self.job_id = job_id
        self.stage = stage
        super().__init__(f"Job {job_id} has no stage after {stage}")


class SameStageError(PipelineError):
    """Raised when a stage move targets the job's current stage."""

    status_code = 409

    def __init__(self, job_id, stage: str):
        self.job_id = job_id
        self.stage = stage
        super().__init__(f"Job {job_id} is already in stage {stage}")


class InvalidStageError(PipelineError):
    """Raised when a stage code is not in the registry."""

    def __init__(self, stage):
        self.stage = stage
        super().__init__(f"Unknown stage: {stage}")


class ArchiveStateError(PipelineError):
    """Raised when an archive change conflicts with the job's archive flags."""

    status_code = 409


class InvalidDurationError(PipelineError):
    """Raised when a schedule would cover less than one day."""

    status_code = 422

    def __init__(self, duration: int, message: str = None):
        self.duration = duration
        super().__init__(message or f"Schedule must cover at least 1 day (got {duration})")


class InvalidScheduleError(PipelineError):
    """Raised for malformed date ranges or jobs that cannot be (re)scheduled."""

    status_code = 422


class InvalidAppointmentTransitionError(PipelineError):
    """Raised when changing an appointment that is already in a terminal status."""

    status_code = 409

    def __init__(self, appointment_id, current_status: str, target_status: str):
        self.appointment_id = appointment_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Appointment {appointment_id} cannot move from {current_status} to {target_status}"
        )


class PermissionDeniedError(PipelineError):
    """Raised when the permission layer denies a mutating call."""

    status_code = 403

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"You do not have permission to {action}")
