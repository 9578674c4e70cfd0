from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from onboarding.rbac import AccessPolicy, AuthUser, is_admin
from onboarding.reports import calculate_pdm_utilization, calculate_report_data
from onboarding.storage import PartnerRepository

from ..auth import get_current_user
from ..schemas import GateMetricsOut, PDMUtilizationOut, ReportOut
from ..store import get_access_policy, get_partner_repository

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=ReportOut)
async def get_report(
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
    policy: AccessPolicy = Depends(get_access_policy),
):
    visible = policy.filter_partners(await partners.list_partners(), user)
    report = calculate_report_data(visible)

    return ReportOut(
        total_partners=report.total_partners,
        gate_metrics=[
            GateMetricsOut(
                gate_id=m.gate_id,
                gate_name=m.gate_name,
                partner_count=m.partner_count,
                completion_rate=m.completion_rate,
                average_days_in_gate=m.average_days_in_gate,
                partner_ids=[p.id for p in m.partners],
            )
            for m in report.gate_metrics
        ],
        generated_at=report.generated_at,
    )


@router.get("/pdm-utilization", response_model=PDMUtilizationOut)
async def get_pdm_utilization(
    pdm_email: str = Query(alias="pdmEmail", min_length=1),
    mode: Literal["revenue", "partner-count"] = Query(default="partner-count"),
    capacity_target: float = Query(alias="capacityTarget", gt=0),
    user: AuthUser = Depends(get_current_user),
    partners: PartnerRepository = Depends(get_partner_repository),
):
    # PDMs see their own load; Admin sees anyone's
    if not is_admin(user) and not (user.role == "PDM" and user.email == pdm_email.lower()):
        raise HTTPException(status_code=403, detail="You cannot view this PDM's utilization")

    u = calculate_pdm_utilization(await partners.list_partners(), pdm_email, mode, capacity_target)
    return PDMUtilizationOut(
        pdm_email=u.pdm_email,
        mode=u.mode,
        current_value=u.current_value,
        capacity_target=u.capacity_target,
        utilization_percentage=u.utilization_percentage,
        partner_ids=[p.id for p in u.partners],
    )
