from __future__ import annotations

import time
import uuid

from fastapi import APIRouter, Depends, HTTPException

from onboarding.models import Partner, QuestionnaireSubmission
from onboarding.progression import can_progress_to, get_gate_blockers
from onboarding.rbac import AccessPolicy, AuthUser, is_admin
from onboarding.status import calculate_gate_status, gate_completion_percentage
from onboarding.storage import PartnerRepository, SubmissionRepository
from onboarding.topology import is_valid_gate
from onboarding.transitions import block_gate, complete_gate, initialize_gate_progress, link_submission

from ..auth import get_current_user
from ..schemas import (
    GateBlockRequest,
    GateCompleteRequest,
    LinkQuestionnaireRequest,
    PartnerCreate,
    ProgressionOut,
)
from ..store import get_access_policy, get_partner_repository, get_submission_repository

router = APIRouter(prefix="/partners", tags=["partners"])

PARTNER_CREATOR_ROLES = frozenset({"Admin", "PAM"})


def generate_partner_id() -> str:
    return f"partner-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"


async def load_partner(partners: PartnerRepository, partner_id: str) -> Partner:
    p = await partners.get_partner(partner_id)
    if p is None:
        raise HTTPException(status_code=404, detail="Partner not found")
    return p


def require_access(policy: AccessPolicy, user: AuthUser, partner: Partner) -> None:
    if not policy.can_access_partner(user, partner):
        raise HTTPException(status_code=403, detail="You do not have access to this partner")


def require_edit(policy: AccessPolicy, user: AuthUser, partner: Partner) -> None:
    if not policy.can_edit_partner(user, partner):
        raise HTTPException(status_code=403, detail="You are not an owner of this partner")


def require_gate(gate_id: str) -> None:
    if not is_valid_gate(gate_id):
        raise HTTPException(status_code=404, detail="Gate not found")


@router.get("", response_model=list[Partner])
async def list_partners(
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    return policy.filter_partners(await partners.list_partners(), user)


@router.post("", response_model=Partner, status_code=201)
async def create_partner(
    payload: PartnerCreate,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
):
    if user.role not in PARTNER_CREATOR_ROLES:
        raise HTTPException(status_code=403, detail="Only PAM or Admin users can create partners")

    pam_owner = payload.pam_owner or user.email
    if not is_admin(user) and pam_owner.lower() != user.email:
        raise HTTPException(status_code=403, detail="PAM users can only create partners they own")

    data = payload.model_dump(exclude={"id", "pam_owner"})
    partner = Partner(
        id=payload.id or generate_partner_id(),
        pam_owner=pam_owner,
        current_gate="pre-contract",
        gates={"pre-contract": initialize_gate_progress("pre-contract")},
        **data,
    )
    return await partners.save_partner(partner)


@router.get("/{partner_id}", response_model=Partner)
async def get_partner(
    partner_id: str,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    p = await load_partner(partners, partner_id)
    require_access(policy, user, p)
    return p


@router.get("/{partner_id}/gates/{gate_id}/progression", response_model=ProgressionOut)
async def get_progression(
    partner_id: str,
    gate_id: str,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    require_gate(gate_id)
    p = await load_partner(partners, partner_id)
    require_access(policy, user, p)

    by_id = await submissions.submissions_by_id(partner_id)
    check = can_progress_to(p, gate_id, by_id)
    progress = p.gates.get(gate_id) or initialize_gate_progress(gate_id)

    return ProgressionOut(
        gate_id=gate_id,
        can_progress=check.can_progress,
        reason=check.reason,
        blockers=get_gate_blockers(p, gate_id, by_id),
        completion_percentage=gate_completion_percentage(progress, by_id),
        status=progress.status if progress.status == "blocked" else calculate_gate_status(progress, by_id),
    )


@router.post("/{partner_id}/gates/{gate_id}/complete", response_model=Partner)
async def complete_partner_gate(
    partner_id: str,
    gate_id: str,
    payload: GateCompleteRequest,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    require_gate(gate_id)
    p = await load_partner(partners, partner_id)
    require_edit(policy, user, p)

    check = can_progress_to(p, gate_id, await submissions.submissions_by_id(partner_id))
    if not check.can_progress:
        raise HTTPException(status_code=400, detail=check.reason)

    updated = complete_gate(p, gate_id, user.email, user.role, payload.signature, payload.notes)
    return await partners.save_partner(updated)


@router.post("/{partner_id}/gates/{gate_id}/block", response_model=Partner)
async def block_partner_gate(
    partner_id: str,
    gate_id: str,
    payload: GateBlockRequest,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    require_gate(gate_id)
    p = await load_partner(partners, partner_id)
    require_edit(policy, user, p)

    return await partners.save_partner(block_gate(p, gate_id, payload.blockers))


@router.post("/{partner_id}/gates/{gate_id}/questionnaires", response_model=Partner)
async def link_questionnaire(
    partner_id: str,
    gate_id: str,
    payload: LinkQuestionnaireRequest,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    require_gate(gate_id)
    p = await load_partner(partners, partner_id)
    if not policy.can_submit_questionnaire(user, p, gate_id):
        raise HTTPException(status_code=403, detail="You cannot submit questionnaires for this gate")

    by_id = await submissions.submissions_by_id(partner_id)
    if payload.submission_id not in by_id:
        raise HTTPException(status_code=404, detail="Submission not found")

    updated = link_submission(p, gate_id, payload.questionnaire_id, payload.submission_id, by_id)
    return await partners.save_partner(updated)


@router.get("/{partner_id}/submissions", response_model=list[QuestionnaireSubmission])
async def list_partner_submissions(
    partner_id: str,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    p = await load_partner(partners, partner_id)
    require_access(policy, user, p)

    rows = await submissions.list_submissions_by_partner(partner_id)
    return sorted(rows, key=lambda s: s.created_at, reverse=True)
