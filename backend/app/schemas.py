from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from onboarding.models import (
    ApprovalSignature,
    ContractType,
    GateStatus,
    QuestionField,
    SectionData,
    SectionStatus,
    Signature,
    SubmissionStatus,
    TierClassification,
)
from onboarding.topology import GateId


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# ============================================================
# Partners
# ============================================================
class PartnerCreate(ApiModel):
    id: Optional[str] = None
    partner_name: str = Field(min_length=1, max_length=200)
    pam_owner: Optional[str] = None  # defaults to the caller
    pdm_owner: Optional[str] = None
    psm_owner: Optional[str] = None
    tam_owner: Optional[str] = None
    contract_signed_date: Optional[datetime] = None
    contract_type: ContractType = "Other"
    tier: TierClassification = "tier-2"
    ccv: float = Field(default=0, ge=0)
    lrp: float = Field(default=0, ge=0)
    target_launch_date: Optional[datetime] = None
    actual_launch_date: Optional[datetime] = None
    onboarding_start_date: Optional[datetime] = None


class ProgressionOut(ApiModel):
    gate_id: GateId
    can_progress: bool
    reason: Optional[str] = None
    blockers: List[str]
    completion_percentage: int
    status: GateStatus


class GateCompleteRequest(ApiModel):
    signature: ApprovalSignature
    notes: Optional[str] = None


class GateBlockRequest(ApiModel):
    blockers: List[str] = Field(min_length=1)


class LinkQuestionnaireRequest(ApiModel):
    questionnaire_id: str = Field(min_length=1)
    submission_id: str = Field(min_length=1)


# ============================================================
# Submissions
# ============================================================
class SubmissionCreate(ApiModel):
    id: Optional[str] = None
    questionnaire_id: str = Field(min_length=1)
    partner_id: str = Field(min_length=1)
    gate_id: Optional[GateId] = None  # inferred from the questionnaire when omitted
    version: str = "1.0.0"
    sections: List[SectionData] = Field(default_factory=list)
    section_statuses: Dict[str, SectionStatus] = Field(default_factory=dict)
    overall_status: SubmissionStatus = "pending"
    signature: Signature
    submitted_at: Optional[datetime] = None


class SubmissionUpdate(ApiModel):
    sections: Optional[List[SectionData]] = None
    section_statuses: Optional[Dict[str, SectionStatus]] = None
    overall_status: Optional[SubmissionStatus] = None
    signature: Optional[Signature] = None
    submitted_at: Optional[datetime] = None


# ============================================================
# Templates
# ============================================================
class TemplateSave(ApiModel):
    name: str = ""
    fields: List[QuestionField]


# ============================================================
# Reports
# ============================================================
class GateMetricsOut(ApiModel):
    gate_id: GateId
    gate_name: str
    partner_count: int
    completion_rate: int
    average_days_in_gate: int
    partner_ids: List[str]


class ReportOut(ApiModel):
    total_partners: int
    gate_metrics: List[GateMetricsOut]
    generated_at: datetime


class PDMUtilizationOut(ApiModel):
    pdm_email: str
    mode: Literal["revenue", "partner-count"]
    current_value: float
    capacity_target: float
    utilization_percentage: float
    partner_ids: List[str]
