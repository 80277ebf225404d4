"""
Executor board and resident view classification.
"""
import uuid
from datetime import datetime, timedelta, timezone

from housing_desk.modules.requests.board import (
    build_executor_board,
    classify_for_executor,
    classify_for_resident,
)
from housing_desk.modules.requests.models import ServiceRequest

EXECUTOR_ID = uuid.uuid4()
OTHER_EXECUTOR_ID = uuid.uuid4()
RESIDENT_ID = uuid.uuid4()
NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

_numbers = iter(range(1001, 2000))


def make_request(status: str, category: str = "plumber", executor_id=None, resident_id=RESIDENT_ID, **fields):
    values = dict(
        id=uuid.uuid4(),
        number=next(_numbers),
        title="Test request",
        description=None,
        category=category,
        priority="medium",
        status=status,
        resident_id=resident_id,
        resident_name="Resident",
        resident_phone=None,
        address=None,
        apartment=None,
        executor_id=executor_id,
        executor_name=None,
        executor_phone=None,
        scheduled_date=None,
        scheduled_time=None,
        access_info=None,
        is_paused=False,
        total_paused_seconds=0,
        rejection_count=0,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(fields)
    return ServiceRequest(**values)


def test_executor_columns():
    requests = [
        make_request("new"),
        make_request("new", category="electrician"),
        make_request("assigned", executor_id=EXECUTOR_ID),
        make_request("accepted", executor_id=EXECUTOR_ID),
        make_request("in_progress", executor_id=EXECUTOR_ID),
        make_request("pending_approval", executor_id=EXECUTOR_ID),
        make_request("completed", executor_id=EXECUTOR_ID),
        make_request("cancelled", executor_id=EXECUTOR_ID),
        make_request("assigned", executor_id=OTHER_EXECUTOR_ID),
    ]

    columns = classify_for_executor(requests, EXECUTOR_ID, "plumber")

    assert [r.status for r in columns["available"]] == ["new"]
    assert [r.status for r in columns["assigned"]] == ["assigned", "accepted"]
    assert [r.status for r in columns["in_progress"]] == ["in_progress"]
    assert sorted(r.status for r in columns["completed"]) == ["completed", "pending_approval"]


def test_other_trade_sees_nothing_available():
    columns = classify_for_executor([make_request("new")], EXECUTOR_ID, "electrician")
    assert columns["available"] == []


def test_resident_columns():
    requests = [
        make_request("new"),
        make_request("in_progress", executor_id=EXECUTOR_ID),
        make_request("pending_approval", executor_id=EXECUTOR_ID),
        make_request("completed", executor_id=EXECUTOR_ID),
        make_request("cancelled"),
        make_request("new", resident_id=uuid.uuid4()),
    ]

    columns = classify_for_resident(requests, RESIDENT_ID)

    assert len(columns["active"]) == 2
    assert len(columns["awaiting_approval"]) == 1
    assert sorted(r.status for r in columns["history"]) == ["cancelled", "completed"]


def test_board_fills_live_timer():
    started = NOW - timedelta(minutes=3, seconds=5)
    request = make_request("in_progress", executor_id=EXECUTOR_ID, started_at=started)

    board = build_executor_board([request], EXECUTOR_ID, "plumber", now=NOW)

    assert board.in_progress[0].elapsed_seconds == 185
    assert board.in_progress[0].timer == "3:05"
    assert board.pending_reschedules == []
