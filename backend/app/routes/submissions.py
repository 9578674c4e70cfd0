from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from onboarding.errors import GateNotReachedError
from onboarding.models import QuestionnaireSubmission
from onboarding.progression import has_reached_gate
from onboarding.rbac import AccessPolicy, AuthUser
from onboarding.storage import PartnerRepository, SubmissionRepository
from onboarding.submissions import create_submission, update_submission
from onboarding.template_store import TemplateStore
from onboarding.topology import gate_for_questionnaire
from onboarding.transitions import link_submission

from ..auth import get_current_user
from ..schemas import SubmissionCreate, SubmissionUpdate
from ..store import (
    get_access_policy,
    get_partner_repository,
    get_submission_repository,
    get_template_store,
)
from .partners import load_partner, require_access

router = APIRouter(prefix="/submissions", tags=["submissions"])


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("", response_model=QuestionnaireSubmission, status_code=201)
async def submit_questionnaire(
    payload: SubmissionCreate,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    templates: TemplateStore = Depends(get_template_store),
    policy: AccessPolicy = Depends(get_access_policy),
):
    p = await load_partner(partners, payload.partner_id)

    gate_id = payload.gate_id or gate_for_questionnaire(payload.questionnaire_id) or p.current_gate
    if not policy.can_submit_questionnaire(user, p, gate_id):
        raise HTTPException(status_code=403, detail="You cannot submit questionnaires for this gate")
    if not has_reached_gate(p, gate_id):
        raise GateNotReachedError(gate_id, p.current_gate)
    if payload.id and await submissions.get_submission(payload.id) is not None:
        raise HTTPException(
            status_code=409,
            detail=f"Submission {payload.id} already exists; use PUT /submissions/{payload.id} to update it",
        )

    # templates are keyed by gate; pin the schema version the answers were given against
    template = await templates.get_current_template(gate_id)

    submission = create_submission(
        questionnaire_id=payload.questionnaire_id,
        partner_id=payload.partner_id,
        submitted_by=user.email,
        submitted_by_role=user.role,
        signature=payload.signature,
        sections=payload.sections,
        section_statuses=payload.section_statuses,
        overall_status=payload.overall_status,
        template_version=template.version if template is not None else None,
        submission_id=payload.id,
        version=payload.version,
        submitted_at=payload.submitted_at,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    saved = await submissions.save_submission(submission)

    by_id = await submissions.submissions_by_id(p.id)
    await partners.save_partner(link_submission(p, gate_id, saved.questionnaire_id, saved.id, by_id))
    return saved


@router.get("/{submission_id}", response_model=QuestionnaireSubmission)
async def get_submission(
    submission_id: str,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    s = await submissions.require_submission(submission_id)
    p = await load_partner(partners, s.partner_id)
    require_access(policy, user, p)
    return s


@router.put("/{submission_id}", response_model=QuestionnaireSubmission)
async def edit_submission(
    submission_id: str,
    payload: SubmissionUpdate,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    submissions: SubmissionRepository = Depends(get_submission_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    existing = await submissions.require_submission(submission_id)
    p = await load_partner(partners, existing.partner_id)
    if not policy.can_edit_questionnaire(user, p):
        raise HTTPException(status_code=403, detail="You cannot edit this questionnaire")

    try:
        updated = update_submission(
            existing,
            submitted_by=user.email,
            submitted_by_role=user.role,
            sections=payload.sections,
            section_statuses=payload.section_statuses,
            overall_status=payload.overall_status,
            signature=payload.signature,
            submitted_at=payload.submitted_at,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    saved = await submissions.save_submission(updated)

    # refresh the stored status of every gate this submission answers
    by_id = await submissions.submissions_by_id(p.id)
    relinked = p
    for gate_id, progress in p.gates.items():
        if progress.questionnaires.get(saved.questionnaire_id) == saved.id:
            relinked = link_submission(relinked, gate_id, saved.questionnaire_id, saved.id, by_id)
    if relinked is not p:
        await partners.save_partner(relinked)

    return saved
