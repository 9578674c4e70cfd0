from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from .errors import GateNotInitializedError, GateNotReachedError
from .models import Approval, ApprovalSignature, GateProgress, Partner, UserRole, utcnow
from .progression import has_reached_gate
from .status import SubmissionsById, calculate_gate_status
from .topology import next_gate


# Mutators never touch storage: they return a new Partner and the caller saves it.


def initialize_gate_progress(gate_id: str) -> GateProgress:
    return GateProgress(gate_id=gate_id, status="not-started", questionnaires={}, approvals=[])


def complete_gate(
    partner: Partner,
    gate_id: str,
    approved_by: str,
    approved_by_role: UserRole,
    signature: ApprovalSignature,
    notes: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Partner:
    """
    Mark `gate_id` passed, record the approval and advance `current_gate`.

    The next gate gets an empty progress record if it has none yet. Completing
    the last gate leaves `current_gate` where it is.
    """
    if gate_id not in partner.gates:
        raise GateNotInitializedError(gate_id)

    now = now or utcnow()
    updated = partner.model_copy(deep=True)
    progress = updated.gates[gate_id]

    progress.status = "passed"
    progress.completed_date = now
    progress.approvals.append(
        Approval(
            approved_by=approved_by,
            approved_by_role=approved_by_role,
            approved_at=now,
            signature=signature,
            notes=notes,
        )
    )
    progress.blockers = []

    nxt = next_gate(gate_id)
    if nxt is not None:
        updated.current_gate = nxt
        if nxt not in updated.gates:
            updated.gates[nxt] = initialize_gate_progress(nxt)

    updated.updated_at = now
    return updated


def block_gate(partner: Partner, gate_id: str, blockers: List[str], *, now: Optional[datetime] = None) -> Partner:
    if gate_id not in partner.gates:
        raise GateNotInitializedError(gate_id)

    updated = partner.model_copy(deep=True)
    progress = updated.gates[gate_id]
    progress.status = "blocked"
    progress.blockers = list(blockers)
    updated.updated_at = now or utcnow()
    return updated


def link_submission(
    partner: Partner,
    gate_id: str,
    questionnaire_id: str,
    submission_id: str,
    submissions: SubmissionsById,
    *,
    now: Optional[datetime] = None,
) -> Partner:
    """
    Record `submission_id` as the answer to `questionnaire_id` within `gate_id`.

    Initializes the gate record if needed, stamps `started_date` on first
    activity and refreshes the stored status from the calculator. A blocked
    gate stays blocked until it is completed. Gates past `current_gate` are
    refused with GateNotReachedError.
    """
    if not has_reached_gate(partner, gate_id):
        raise GateNotReachedError(gate_id, partner.current_gate)

    now = now or utcnow()
    updated = partner.model_copy(deep=True)
    progress = updated.gates.get(gate_id)
    if progress is None:
        progress = initialize_gate_progress(gate_id)
        updated.gates[gate_id] = progress

    progress.questionnaires[questionnaire_id] = submission_id
    if progress.started_date is None:
        progress.started_date = now
    if progress.status != "blocked":
        progress.status = calculate_gate_status(progress, submissions)

    updated.updated_at = now
    return updated


__all__ = ["initialize_gate_progress", "complete_gate", "block_gate", "link_submission"]
