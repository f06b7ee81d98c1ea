from app.domain.pipeline.stages import (
    ALL_STAGES,
    BENCH_STAGES,
    get_stage,
    is_valid_stage,
    list_stages,
    next_stage,
    stage_index,
    stage_label,
)


def test_stages_are_in_pipeline_order():
    assert ALL_STAGES[0] == "APPOINTMENT_SCHEDULED"
    assert ALL_STAGES[-1] == "FINAL_PAYMENT_CLOSED"
    assert len(ALL_STAGES) == 13
    assert [info.order for info in list_stages()] == list(range(13))


def test_next_stage_follows_order():
    assert next_stage("ESTIMATE_SENT") == "ENGAGED_DESIGN_REVIEW"
    assert next_stage("READY_TO_SCHEDULE") == "SCHEDULED"


def test_last_and_unknown_stages_have_no_successor():
    assert next_stage("FINAL_PAYMENT_CLOSED") is None
    assert next_stage("CONTRACT_SIGNED") is None
    assert next_stage("NOPE") is None


def test_labels():
    assert stage_label("DEPOSIT_PENDING") == "Signed / Deposit Pending"
    assert stage_label("ESTIMATE_IN_PROGRESS") == "Estimate Current, first 5 days"
    assert stage_label("CONTRACT_SIGNED") == "Contract Signed"
    assert stage_label("SOMETHING_ELSE") == "SOMETHING_ELSE"


def test_legacy_code_is_not_a_valid_target():
    assert not is_valid_stage("CONTRACT_SIGNED")
    assert stage_index("CONTRACT_SIGNED") is None
    assert get_stage("CONTRACT_SIGNED") is None


def test_bench_stages_are_the_readiness_phase():
    assert BENCH_STAGES == ("DEPOSIT_PENDING", "JOB_PREP", "TAKEOFF_COMPLETE", "READY_TO_SCHEDULE")
    assert get_stage("JOB_PREP").phase == "readiness"
