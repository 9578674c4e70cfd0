from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .topology import GateId


# ============================================================
# Enumerations (closed sets)
# ============================================================
GateStatus = Literal["not-started", "in-progress", "passed", "failed", "blocked"]
SubmissionStatus = Literal["pass", "fail", "partial", "pending"]
SectionResult = Literal["pass", "fail", "pending"]
UserRole = Literal["Admin", "PAM", "PDM", "TPM", "PSM", "TAM"]
ContractType = Literal["PPA", "Distribution", "Sales-Agent", "Other"]
TierClassification = Literal["tier-0", "tier-1", "tier-2"]
SignatureType = Literal["typed", "drawn"]
FieldType = Literal["text", "textarea", "select", "radio", "checkbox", "date"]

CHOICE_FIELD_TYPES = frozenset({"select", "radio", "checkbox"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _StoredModel(BaseModel):
    # Wire/storage shape is camelCase; Python attributes are snake_case.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ============================================================
# Partner / gate progress
# ============================================================
class ApprovalSignature(_StoredModel):
    type: SignatureType
    data: str


class Approval(_StoredModel):
    approved_by: str
    approved_by_role: UserRole
    approved_at: datetime
    signature: ApprovalSignature
    notes: Optional[str] = None


class GateProgress(_StoredModel):
    gate_id: str
    status: GateStatus = "not-started"
    started_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    # questionnaire id -> submission id
    questionnaires: Dict[str, str] = Field(default_factory=dict)
    approvals: List[Approval] = Field(default_factory=list)
    blockers: Optional[List[str]] = None


class Partner(_StoredModel):
    id: str
    partner_name: str = ""

    pam_owner: str
    pdm_owner: Optional[str] = None
    psm_owner: Optional[str] = None
    tam_owner: Optional[str] = None

    contract_signed_date: Optional[datetime] = None
    contract_type: ContractType = "Other"
    tier: TierClassification = "tier-2"
    ccv: float = 0  # contractually committed value
    lrp: float = 0  # launch revenue potential

    target_launch_date: Optional[datetime] = None
    actual_launch_date: Optional[datetime] = None
    onboarding_start_date: Optional[datetime] = None

    current_gate: GateId = "pre-contract"
    gates: Dict[str, GateProgress] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# Owner fields participating in ownership checks. tpmOwner is deprecated.
OWNER_FIELDS = ("pam_owner", "pdm_owner", "psm_owner", "tam_owner")


# ============================================================
# Questionnaire submissions
# ============================================================
class Signature(_StoredModel):
    type: SignatureType
    data: str
    signer_name: str
    signer_email: str
    timestamp: datetime = Field(default_factory=utcnow)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class SectionStatus(_StoredModel):
    result: SectionResult = "pending"
    evaluated_at: Optional[datetime] = None
    evaluated_by: Optional[str] = None
    notes: Optional[str] = None
    failure_reasons: Optional[List[str]] = None


class SectionData(_StoredModel):
    section_id: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    status: SectionStatus = Field(default_factory=SectionStatus)


class QuestionnaireSubmission(_StoredModel):
    id: str
    questionnaire_id: str
    version: str = "1.0.0"
    # template schema version the answers were given against; never rewritten
    template_version: Optional[int] = None
    partner_id: str

    sections: List[SectionData] = Field(default_factory=list)
    section_statuses: Dict[str, SectionStatus] = Field(default_factory=dict)
    overall_status: SubmissionStatus = "pending"

    signature: Signature

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None
    submitted_by: str
    submitted_by_role: UserRole
    ip_address: str = "unknown"
    user_agent: Optional[str] = None


# ============================================================
# Questionnaire templates
# ============================================================
class QuestionField(_StoredModel):
    id: str
    type: FieldType
    label: str
    help_text: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[List[str]] = None
    order: int = 0
    removed: Optional[bool] = None


class QuestionnaireTemplate(_StoredModel):
    id: str
    name: str = ""
    version: int = 1
    fields: List[QuestionField] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    updated_by: str = ""


class TemplateVersion(_StoredModel):
    """Immutable snapshot of a template as it was before being superseded."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    version: int
    fields: List[QuestionField]
    created_at: datetime
    created_by: str


class TemplateMetadata(_StoredModel):
    last_updated: datetime = Field(default_factory=utcnow)
    templates: List[str] = Field(default_factory=list)


__all__ = [
    "GateStatus",
    "SubmissionStatus",
    "SectionResult",
    "UserRole",
    "ContractType",
    "TierClassification",
    "SignatureType",
    "FieldType",
    "CHOICE_FIELD_TYPES",
    "OWNER_FIELDS",
    "utcnow",
    "ApprovalSignature",
    "Approval",
    "GateProgress",
    "Partner",
    "Signature",
    "SectionStatus",
    "SectionData",
    "QuestionnaireSubmission",
    "QuestionField",
    "QuestionnaireTemplate",
    "TemplateVersion",
    "TemplateMetadata",
]
