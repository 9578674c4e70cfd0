from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Sequence

from .models import Partner, utcnow
from .topology import GATE_ORDER, gate_index, gate_label

UtilizationMode = Literal["revenue", "partner-count"]

_SECONDS_PER_DAY = 60 * 60 * 24


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


@dataclass
class GateMetrics:
    gate_id: str
    gate_name: str
    partner_count: int
    completion_rate: int  # percent of partners at or beyond this gate who passed it
    average_days_in_gate: int
    partners: List[Partner] = field(default_factory=list)


@dataclass
class ReportData:
    total_partners: int
    gate_metrics: List[GateMetrics]
    generated_at: datetime


def calculate_gate_metrics(partners: Sequence[Partner], gate_id: str) -> GateMetrics:
    in_gate = [p for p in partners if p.current_gate == gate_id]

    completed = []
    for p in partners:
        progress = p.gates.get(gate_id)
        if progress and progress.status == "passed" and progress.started_date and progress.completed_date:
            completed.append(progress)

    idx = gate_index(gate_id)
    reached = [p for p in partners if gate_index(p.current_gate) >= idx]
    completion_rate = _round_half_up(100 * len(completed) / len(reached)) if reached else 0

    average_days = 0
    if completed:
        total = sum((g.completed_date - g.started_date).total_seconds() / _SECONDS_PER_DAY for g in completed)
        average_days = _round_half_up(total / len(completed))

    return GateMetrics(
        gate_id=gate_id,
        gate_name=gate_label(gate_id),
        partner_count=len(in_gate),
        completion_rate=completion_rate,
        average_days_in_gate=average_days,
        partners=in_gate,
    )


def calculate_report_data(partners: Sequence[Partner]) -> ReportData:
    return ReportData(
        total_partners=len(partners),
        gate_metrics=[calculate_gate_metrics(partners, g) for g in GATE_ORDER],
        generated_at=utcnow(),
    )


@dataclass
class PDMUtilization:
    pdm_email: str
    mode: UtilizationMode
    current_value: float  # CCV sum or partner count
    capacity_target: float
    utilization_percentage: float
    partners: List[Partner] = field(default_factory=list)


def calculate_pdm_utilization(
    partners: Sequence[Partner],
    pdm_email: str,
    mode: UtilizationMode,
    capacity_target: float,
) -> PDMUtilization:
    email = pdm_email.lower()
    owned = [p for p in partners if p.pdm_owner and p.pdm_owner.lower() == email]

    if mode == "revenue":
        current = float(sum(p.ccv for p in owned))
    else:
        current = float(len(owned))

    pct = (current / capacity_target) * 100 if capacity_target > 0 else 0.0

    return PDMUtilization(
        pdm_email=pdm_email,
        mode=mode,
        current_value=current,
        capacity_target=capacity_target,
        utilization_percentage=pct,
        partners=owned,
    )


__all__ = [
    "UtilizationMode",
    "GateMetrics",
    "ReportData",
    "PDMUtilization",
    "calculate_gate_metrics",
    "calculate_report_data",
    "calculate_pdm_utilization",
]
