"""Stage registry - the ordered pipeline stages and their labels"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

STAGE_LABELS = {
    # Appointments
    "APPOINTMENT_SCHEDULED": "Appointment Scheduled",
    # Sales phase
    "ESTIMATE_IN_PROGRESS": "Estimate Current, first 5 days",
    "ESTIMATE_SENT": "Estimate Sent",
    "ENGAGED_DESIGN_REVIEW": "Design Review",
    "CONTRACT_OUT": "Contract Out",
    # Job readiness phase
    "DEPOSIT_PENDING": "Signed / Deposit Pending",
    "JOB_PREP": "Job Prep",
    "TAKEOFF_COMPLETE": "Takeoff Complete",
    "READY_TO_SCHEDULE": "Ready to Schedule",
    # Execution phase
    "SCHEDULED": "Scheduled",
    "IN_PRODUCTION": "In Production",
    "INSTALLED": "Installed",
    "FINAL_PAYMENT_CLOSED": "Final Payment Closed",
}

# Older records may still carry these; they have a label but no place in the order
LEGACY_STAGE_LABELS = {
    "CONTRACT_SIGNED": "Contract Signed",
}

STAGE_PHASES = {
    "appointments": ["APPOINTMENT_SCHEDULED"],
    "sales": ["ESTIMATE_IN_PROGRESS", "ESTIMATE_SENT", "ENGAGED_DESIGN_REVIEW", "CONTRACT_OUT"],
    "readiness": ["DEPOSIT_PENDING", "JOB_PREP", "TAKEOFF_COMPLETE", "READY_TO_SCHEDULE"],
    "execution": ["SCHEDULED", "IN_PRODUCTION", "INSTALLED", "FINAL_PAYMENT_CLOSED"],
}

ALL_STAGES = [code for codes in STAGE_PHASES.values() for code in codes]

# Stages the scheduling engine moves jobs into and out of
BENCH_STAGES = tuple(STAGE_PHASES["readiness"])
READY_TO_SCHEDULE = "READY_TO_SCHEDULE"
SCHEDULED = "SCHEDULED"
ESTIMATE_IN_PROGRESS = "ESTIMATE_IN_PROGRESS"
ESTIMATE_SENT = "ESTIMATE_SENT"
FINAL_PAYMENT_CLOSED = "FINAL_PAYMENT_CLOSED"


class StageInfo(BaseModel):
    """Immutable registry entry"""

    model_config = ConfigDict(frozen=True)

    code: str
    label: str
    order: int
    phase: str


_PHASE_BY_CODE = {code: phase for phase, codes in STAGE_PHASES.items() for code in codes}

_REGISTRY = {
    code: StageInfo(code=code, label=STAGE_LABELS[code], order=index, phase=_PHASE_BY_CODE[code])
    for index, code in enumerate(ALL_STAGES)
}


def list_stages() -> list[StageInfo]:
    return [_REGISTRY[code] for code in ALL_STAGES]


def get_stage(code: str) -> Optional[StageInfo]:
    return _REGISTRY.get(code)


def is_valid_stage(code: str) -> bool:
    return code in _REGISTRY


def stage_index(code: str) -> Optional[int]:
    """Position of ``code`` in the pipeline, or None if it is not an ordered stage"""
    info = _REGISTRY.get(code)
    return info.order if info else None


def next_stage(code: str) -> Optional[str]:
    """Default successor of ``code``; None for the last stage or unknown codes"""
    index = stage_index(code)
    if index is None or index + 1 >= len(ALL_STAGES):
        return None
    return ALL_STAGES[index + 1]


def stage_label(code: str) -> str:
    if code in STAGE_LABELS:
        return STAGE_LABELS[code]
    return LEGACY_STAGE_LABELS.get(code, code)
