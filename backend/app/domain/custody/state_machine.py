"""
Package status state machine.

Pure functions only: no database access. The custody service calls these
before it writes anything, so a rejected transition never reaches storage.

Rules:
- CREATED is the initial state; DELIVERED and CANCELLED are terminal.
- Progress only moves forward along PROGRESSION. IN_TRANSIT may repeat
  (one handoff after another).
- CANCELLED and EXCEPTION are reachable from any non-terminal state.
- From EXCEPTION, the package resumes from the stage its chain of custody
  had reached (``resume_floor``): only moves that are valid from that stage
  are allowed, so replaying the chain still reproduces the stored status.
"""

from typing import Iterable, List, Optional, Sequence

from backend.app.core.exceptions import InvalidStateTransitionError
from backend.app.models.package_enums import PackageStatus, TransferType

PROGRESSION: Sequence[PackageStatus] = (
    PackageStatus.CREATED,
    PackageStatus.PENDING_PICKUP,
    PackageStatus.PICKED_UP,
    PackageStatus.IN_TRANSIT,
    PackageStatus.OUT_FOR_DELIVERY,
    PackageStatus.DELIVERED,
)

TERMINAL_STATES = frozenset({PackageStatus.DELIVERED, PackageStatus.CANCELLED})
REPEATABLE_STATES = frozenset({PackageStatus.IN_TRANSIT})
SIDE_STATES = frozenset({PackageStatus.CANCELLED, PackageStatus.EXCEPTION})

TRANSFER_STATUS = {
    TransferType.PICKUP: PackageStatus.PICKED_UP,
    TransferType.HANDOFF: PackageStatus.IN_TRANSIT,
    TransferType.DELIVERY: PackageStatus.DELIVERED,
}

_RANK = {status: rank for rank, status in enumerate(PROGRESSION)}


def is_terminal(status: PackageStatus) -> bool:
    return status in TERMINAL_STATES


def status_for_transfer(transfer_type: TransferType) -> PackageStatus:
    """The status a package takes on when a transfer of this type is recorded."""
    return TRANSFER_STATUS[TransferType(transfer_type)]


def can_transition(
    current: PackageStatus,
    target: PackageStatus,
    resume_floor: Optional[PackageStatus] = None,
) -> bool:
    """
    Whether ``current`` may move to ``target``.

    ``resume_floor`` only matters when leaving EXCEPTION: it is the status
    the transfer log replays to (CREATED when omitted).
    """
    current = PackageStatus(current)
    target = PackageStatus(target)

    if current in TERMINAL_STATES:
        return False

    if target == current:
        return target in REPEATABLE_STATES

    if target in SIDE_STATES:
        return True

    if current == PackageStatus.EXCEPTION:
        floor = PackageStatus(resume_floor or PackageStatus.CREATED)
        return target != PackageStatus.CREATED and can_transition(floor, target)

    return _RANK[target] > _RANK[current]


def ensure_transition(
    current: PackageStatus,
    target: PackageStatus,
    resume_floor: Optional[PackageStatus] = None,
) -> PackageStatus:
    """Return ``target`` if the move is allowed, raise 409 otherwise."""
    if not can_transition(current, target, resume_floor):
        raise InvalidStateTransitionError(
            "Package", PackageStatus(current).value, PackageStatus(target).value
        )
    return PackageStatus(target)


def next_status_for_transfer(
    current: PackageStatus,
    transfer_type: TransferType,
    resume_floor: Optional[PackageStatus] = None,
) -> PackageStatus:
    """Derive and validate the status produced by recording a transfer."""
    return ensure_transition(current, status_for_transfer(transfer_type), resume_floor)


def replay_status_history(transfer_types: Iterable[TransferType]) -> List[PackageStatus]:
    """
    Rebuild the status history implied by a chain of custody.

    ``transfer_types`` must be in chain order (timestamp, id). The result
    starts with CREATED and has one entry per transfer; an out-of-order
    chain raises InvalidStateTransitionError.
    """
    history = [PackageStatus.CREATED]
    for transfer_type in transfer_types:
        history.append(next_status_for_transfer(history[-1], transfer_type))
    return history


def replay_status(transfer_types: Iterable[TransferType]) -> PackageStatus:
    """Final status implied by a chain of custody."""
    return replay_status_history(transfer_types)[-1]
