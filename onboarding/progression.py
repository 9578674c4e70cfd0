from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .models import Partner
from .status import SubmissionsById, calculate_gate_status
from .topology import gate_index, gate_name, previous_gate


@dataclass(frozen=True)
class ProgressionCheck:
    can_progress: bool
    reason: Optional[str] = None


def can_progress_to(partner: Partner, target_gate: str, submissions: SubmissionsById) -> ProgressionCheck:
    """
    Decide whether the partner may enter `target_gate`.

    A denial is a normal result carrying a human-readable reason, not an error.
    Only the immediate predecessor is consulted; earlier gates were already
    gated when that predecessor was entered.
    """
    if gate_index(target_gate) < 0:
        return ProgressionCheck(False, "Invalid gate ID")

    if target_gate == "pre-contract":
        return ProgressionCheck(True)

    prev = previous_gate(target_gate)
    if prev is None:
        return ProgressionCheck(True)

    prev_progress = partner.gates.get(prev)
    if prev_progress is None:
        return ProgressionCheck(False, f"Previous gate ({prev}) has not been started")

    if calculate_gate_status(prev_progress, submissions) != "passed":
        return ProgressionCheck(
            False,
            f'Previous gate "{gate_name(prev)}" must be completed before progressing to {target_gate}',
        )

    return ProgressionCheck(True)


def has_reached_gate(partner: Partner, gate_id: str) -> bool:
    """True for known gates at or before the partner's current gate."""
    index = gate_index(gate_id)
    return 0 <= index <= gate_index(partner.current_gate)


def get_gate_blockers(partner: Partner, target_gate: str, submissions: SubmissionsById) -> List[str]:
    """Progression reason (if blocked) followed by blockers recorded on the gate itself."""
    blockers: List[str] = []

    check = can_progress_to(partner, target_gate, submissions)
    if not check.can_progress and check.reason:
        blockers.append(check.reason)

    progress = partner.gates.get(target_gate)
    if progress is not None and progress.blockers:
        blockers.extend(progress.blockers)

    return blockers


__all__ = ["ProgressionCheck", "can_progress_to", "has_reached_gate", "get_gate_blockers"]
