"""
Unit tests for the package status state machine.
"""

import pytest

from backend.app.core.exceptions import InvalidStateTransitionError
from backend.app.domain.custody.state_machine import (
    PROGRESSION, can_transition, ensure_transition, is_terminal,
    next_status_for_transfer, replay_status, replay_status_history, status_for_transfer
)
from backend.app.models.package_enums import PackageStatus, TransferType


def test_transfer_types_map_to_statuses():
    assert status_for_transfer(TransferType.PICKUP) == PackageStatus.PICKED_UP
    assert status_for_transfer(TransferType.HANDOFF) == PackageStatus.IN_TRANSIT
    assert status_for_transfer(TransferType.DELIVERY) == PackageStatus.DELIVERED


def test_terminal_states():
    assert is_terminal(PackageStatus.DELIVERED)
    assert is_terminal(PackageStatus.CANCELLED)
    assert not is_terminal(PackageStatus.EXCEPTION)
    assert not is_terminal(PackageStatus.CREATED)


def test_forward_moves_allowed_along_progression():
    for i, current in enumerate(PROGRESSION[:-1]):
        for target in PROGRESSION[i + 1:]:
            assert can_transition(current, target), (current, target)


def test_backward_moves_rejected():
    assert not can_transition(PackageStatus.IN_TRANSIT, PackageStatus.PICKED_UP)
    assert not can_transition(PackageStatus.OUT_FOR_DELIVERY, PackageStatus.CREATED)
    assert not can_transition(PackageStatus.PICKED_UP, PackageStatus.PENDING_PICKUP)


def test_repeated_handoff_is_allowed_but_other_self_loops_are_not():
    assert can_transition(PackageStatus.IN_TRANSIT, PackageStatus.IN_TRANSIT)
    assert not can_transition(PackageStatus.PICKED_UP, PackageStatus.PICKED_UP)
    assert not can_transition(PackageStatus.CREATED, PackageStatus.CREATED)


@pytest.mark.parametrize("terminal", [PackageStatus.DELIVERED, PackageStatus.CANCELLED])
def test_terminal_states_admit_no_transition(terminal):
    for target in PackageStatus:
        assert not can_transition(terminal, target)


def test_cancel_and_exception_reachable_from_any_non_terminal_state():
    for current in PackageStatus:
        if is_terminal(current):
            continue
        assert can_transition(current, PackageStatus.CANCELLED)
        if current != PackageStatus.EXCEPTION:
            assert can_transition(current, PackageStatus.EXCEPTION)


def test_exception_can_resume_any_forward_stage():
    assert can_transition(PackageStatus.EXCEPTION, PackageStatus.PICKED_UP)
    assert can_transition(PackageStatus.EXCEPTION, PackageStatus.DELIVERED)
    assert not can_transition(PackageStatus.EXCEPTION, PackageStatus.CREATED)


def test_exception_resumes_from_stage_reached_by_the_chain():
    floor = PackageStatus.IN_TRANSIT

    assert can_transition(PackageStatus.EXCEPTION, PackageStatus.IN_TRANSIT, floor)
    assert can_transition(PackageStatus.EXCEPTION, PackageStatus.OUT_FOR_DELIVERY, floor)
    assert can_transition(PackageStatus.EXCEPTION, PackageStatus.CANCELLED, floor)
    assert not can_transition(PackageStatus.EXCEPTION, PackageStatus.PICKED_UP, floor)
    assert not can_transition(PackageStatus.EXCEPTION, PackageStatus.PENDING_PICKUP, floor)
    with pytest.raises(InvalidStateTransitionError):
        next_status_for_transfer(PackageStatus.EXCEPTION, TransferType.PICKUP, floor)


def test_ensure_transition_raises_conflict():
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        ensure_transition(PackageStatus.DELIVERED, PackageStatus.IN_TRANSIT)

    assert exc_info.value.status_code == 409
    assert exc_info.value.error_code == "ERR_STATE_001"
    assert exc_info.value.details["current"] == "delivered"


def test_pickup_after_handoff_is_rejected():
    with pytest.raises(InvalidStateTransitionError):
        next_status_for_transfer(PackageStatus.IN_TRANSIT, TransferType.PICKUP)


def test_delivery_can_skip_intermediate_stages():
    assert next_status_for_transfer(PackageStatus.CREATED, TransferType.DELIVERY) == PackageStatus.DELIVERED


def test_replay_rebuilds_history():
    chain = [TransferType.PICKUP, TransferType.HANDOFF, TransferType.HANDOFF, TransferType.DELIVERY]

    history = replay_status_history(chain)

    assert history == [
        PackageStatus.CREATED,
        PackageStatus.PICKED_UP,
        PackageStatus.IN_TRANSIT,
        PackageStatus.IN_TRANSIT,
        PackageStatus.DELIVERED,
    ]
    assert replay_status(chain) == PackageStatus.DELIVERED


def test_replay_of_empty_chain_is_created():
    assert replay_status([]) == PackageStatus.CREATED


def test_replay_rejects_out_of_order_chain():
    with pytest.raises(InvalidStateTransitionError):
        replay_status([TransferType.DELIVERY, TransferType.HANDOFF])
