from __future__ import annotations

import pytest

from smart_recruiter.core.states import ApplicationStateMachine, InvalidTransition


def test_success_path_moves_processing_to_pending_to_sent() -> None:
    machine = ApplicationStateMachine()

    machine.move_to("pending")
    machine.move_to("sent")

    assert machine.status == "sent"


def test_processing_can_fail() -> None:
    machine = ApplicationStateMachine()

    assert machine.can_move_to("failed")
    machine.move_to("failed")
    assert machine.status == "failed"


@pytest.mark.parametrize(
    ("start", "target"),
    [("sent", "pending"), ("sent", "failed"), ("failed", "pending"), ("pending", "failed"), ("processing", "sent")],
)
def test_illegal_transitions_are_refused(start: str, target: str) -> None:
    machine = ApplicationStateMachine(status=start)

    with pytest.raises(InvalidTransition):
        machine.move_to(target)
    assert machine.status == start
