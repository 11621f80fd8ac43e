from __future__ import annotations

import asyncio

import pytest

from s3_sync_workflow.domain import (
    DEFAULT_CONTROL_STEP_POLICY,
    DEFAULT_PART_STEP_POLICY,
    BackoffKind,
    ExecutionStatus,
    PartDescriptor,
    PartResult,
    StepPolicy,
    TransferExecution,
    UploadSession,
    UploadSessionState,
)


def test_default_policies_allow_five_retries() -> None:
    assert DEFAULT_CONTROL_STEP_POLICY.max_attempts == 6
    assert DEFAULT_CONTROL_STEP_POLICY.delay_after(1) == 10.0
    assert DEFAULT_CONTROL_STEP_POLICY.timeout_seconds == 60.0
    assert DEFAULT_PART_STEP_POLICY.delay_after(3) == 30.0
    assert DEFAULT_PART_STEP_POLICY.timeout_seconds == 3600.0


def test_exponential_backoff_scales_with_attempt_number() -> None:
    policy = StepPolicy(max_attempts=4, base_delay_seconds=2.0, backoff=BackoffKind.EXPONENTIAL)

    assert [policy.delay_after(attempt) for attempt in (1, 2, 3)] == [2.0, 4.0, 6.0]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0, "base_delay_seconds": 1.0},
        {"max_attempts": 1, "base_delay_seconds": -1.0},
        {"max_attempts": 1, "base_delay_seconds": 1.0, "timeout_seconds": 0.0},
    ],
)
def test_step_policy_rejects_invalid_values(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        StepPolicy(**kwargs)


def test_part_descriptor_validates_range_and_data() -> None:
    with pytest.raises(ValueError):
        PartDescriptor(part_number=0, start=0, end=1)
    with pytest.raises(ValueError):
        PartDescriptor(part_number=1, start=5, end=4)
    with pytest.raises(ValueError):
        PartDescriptor(part_number=1, start=0, end=3, data=b"abc")


def test_part_result_record_round_trip_uses_wire_names() -> None:
    result = PartResult(part_number=2, etag='"abc"')

    assert result.to_record() == {"partNumber": 2, "etag": '"abc"'}
    assert PartResult.from_record(result.to_record()) == result


def test_upload_session_orders_parts_recorded_out_of_order() -> None:
    session = UploadSession(destination_key="a.bin")
    session.mark_initiated("upload-1")

    async def scenario() -> None:
        await asyncio.gather(
            session.record_part(PartResult(part_number=3, etag="c")),
            session.record_part(PartResult(part_number=1, etag="a")),
            session.record_part(PartResult(part_number=2, etag="b")),
        )

    asyncio.run(scenario())

    assert [part.part_number for part in session.ordered_parts()] == [1, 2, 3]
    assert session.part_count == 3


def test_upload_session_rejects_conflicting_duplicate_part() -> None:
    session = UploadSession(destination_key="a.bin")
    session.mark_initiated("upload-1")

    async def scenario() -> None:
        await session.record_part(PartResult(part_number=1, etag="a"))
        await session.record_part(PartResult(part_number=1, etag="a"))
        await session.record_part(PartResult(part_number=1, etag="other"))

    with pytest.raises(RuntimeError, match="already recorded"):
        asyncio.run(scenario())
    assert session.part_count == 1


def test_upload_session_closes_exactly_once() -> None:
    session = UploadSession(destination_key="a.bin")
    assert session.state is UploadSessionState.UNINITIATED

    session.mark_initiated("upload-1")
    assert session.is_open
    session.mark_completed()

    assert not session.is_open
    with pytest.raises(RuntimeError):
        session.mark_aborted()


def test_execution_transition_sets_completion_time_for_terminal_status() -> None:
    execution = TransferExecution(execution_id="exec-1", key="a.bin")

    execution.transition(ExecutionStatus.RUNNING)
    assert execution.completed_at is None
    assert not execution.is_terminal

    execution.transition(ExecutionStatus.FAILED, last_error="boom")
    assert execution.is_terminal
    assert execution.completed_at is not None
    assert execution.last_error == "boom"
