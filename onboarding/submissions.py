from __future__ import annotations

import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from .models import (
    QuestionnaireSubmission,
    SectionData,
    SectionStatus,
    Signature,
    SubmissionStatus,
    UserRole,
    utcnow,
)


def generate_submission_id() -> str:
    return f"submission-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"


def create_submission(
    *,
    questionnaire_id: str,
    partner_id: str,
    submitted_by: str,
    submitted_by_role: UserRole,
    signature: Signature,
    sections: Optional[List[SectionData]] = None,
    section_statuses: Optional[Dict[str, SectionStatus]] = None,
    overall_status: SubmissionStatus = "pending",
    template_version: Optional[int] = None,
    submission_id: Optional[str] = None,
    version: str = "1.0.0",
    submitted_at: Optional[datetime] = None,
    ip_address: str = "unknown",
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> QuestionnaireSubmission:
    """
    Build a brand-new submission. `template_version` pins the template schema
    the answers were given against and is carried unchanged by every update.
    """
    now = now or utcnow()
    return QuestionnaireSubmission(
        id=submission_id or generate_submission_id(),
        questionnaire_id=questionnaire_id,
        version=version,
        template_version=template_version,
        partner_id=partner_id,
        sections=list(sections or []),
        section_statuses=dict(section_statuses or {}),
        overall_status=overall_status,
        signature=signature.model_copy(update={"ip_address": signature.ip_address or ip_address}),
        created_at=now,
        updated_at=now,
        submitted_at=submitted_at or now,
        submitted_by=submitted_by,
        submitted_by_role=submitted_by_role,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def update_submission(
    existing: QuestionnaireSubmission,
    *,
    submitted_by: str,
    submitted_by_role: UserRole,
    sections: Optional[List[SectionData]] = None,
    section_statuses: Optional[Dict[str, SectionStatus]] = None,
    overall_status: Optional[SubmissionStatus] = None,
    signature: Optional[Signature] = None,
    submitted_at: Optional[datetime] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> QuestionnaireSubmission:
    """
    Apply a partial edit to an existing submission.

    An update is never a create: `id`, `created_at` and `template_version`
    are carried over verbatim and only `updated_at` moves forward.
    """
    if sections is None and section_statuses is None and overall_status is None and signature is None:
        raise ValueError("At least one field must be provided for update")

    now = now or utcnow()
    if now < existing.created_at:
        now = existing.created_at

    changes: Dict[str, object] = {
        "updated_at": now,
        "submitted_by": submitted_by,
        "submitted_by_role": submitted_by_role,
    }
    if sections is not None:
        changes["sections"] = list(sections)
    if section_statuses is not None:
        changes["section_statuses"] = dict(section_statuses)
    if overall_status is not None:
        changes["overall_status"] = overall_status
    if signature is not None:
        changes["signature"] = signature
    if submitted_at is not None:
        changes["submitted_at"] = submitted_at
    if ip_address is not None:
        changes["ip_address"] = ip_address
    if user_agent is not None:
        changes["user_agent"] = user_agent

    return existing.model_copy(deep=True, update=changes)


__all__ = ["generate_submission_id", "create_submission", "update_submission"]
