from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, get_args

import yaml


GateId = Literal["pre-contract", "gate-0", "gate-1", "gate-2", "gate-3", "post-launch"]

GATE_ORDER: Tuple[GateId, ...] = get_args(GateId)

GATE_LABELS: Dict[str, str] = {
    "pre-contract": "Pre-Contract: PDM Engagement",
    "gate-0": "Gate 0: Onboarding Kickoff",
    "gate-1": "Gate 1: Ready to Sell",
    "gate-2": "Gate 2: Ready to Order",
    "gate-3": "Gate 3: Ready to Deliver",
    "post-launch": "Post-Launch",
}


@dataclass(frozen=True)
class GateConfig:
    id: str
    name: str
    questionnaires: Tuple[str, ...]
    description: str = ""
    estimated_weeks: str = ""


# -----------------------------
# Registry: load YAML once
# -----------------------------
_REGISTRY_PATH = Path(__file__).resolve().parent / "gates.yaml"

_GATES_CACHE: Optional[Dict[str, GateConfig]] = None


def _load_yaml(path: Path) -> Dict[str, Any]:
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def parse_gates(raw: Dict[str, Any]) -> Dict[str, GateConfig]:
    """
    Build the gate registry from its document form.

    Accepts `{gates: [{id, name, questionnaires}, ...]}` (JSON or YAML).
    Configured ids must be exactly the fixed gate order; only names and
    questionnaire lists are data.
    """
    items = raw.get("gates") or []
    ids = [str(g.get("id")) for g in items]
    if tuple(ids) != GATE_ORDER:
        raise ValueError(f"Gate registry must list gates in order {list(GATE_ORDER)}, got {ids}")

    out: Dict[str, GateConfig] = {}
    for g in items:
        out[g["id"]] = GateConfig(
            id=g["id"],
            name=g.get("name") or g["id"],
            questionnaires=tuple(g.get("questionnaires") or ()),
            description=g.get("description", ""),
            estimated_weeks=str(g.get("estimatedWeeks", "")),
        )
    return out


def gates() -> Dict[str, GateConfig]:
    global _GATES_CACHE
    if _GATES_CACHE is None:
        _GATES_CACHE = parse_gates(_load_yaml(_REGISTRY_PATH))
    return _GATES_CACHE


# -----------------------------
# Order lookups
# -----------------------------
def is_valid_gate(gate_id: str) -> bool:
    return gate_id in GATE_ORDER


def gate_index(gate_id: str) -> int:
    """Position of the gate in the progression order, -1 if unknown."""
    try:
        return GATE_ORDER.index(gate_id)  # type: ignore[arg-type]
    except ValueError:
        return -1


def previous_gate(gate_id: str) -> Optional[GateId]:
    idx = gate_index(gate_id)
    if idx <= 0:
        return None
    return GATE_ORDER[idx - 1]


def next_gate(gate_id: str) -> Optional[GateId]:
    idx = gate_index(gate_id)
    if idx < 0 or idx >= len(GATE_ORDER) - 1:
        return None
    return GATE_ORDER[idx + 1]


def gate_config(gate_id: str) -> Optional[GateConfig]:
    return gates().get(gate_id)


def required_questionnaires(gate_id: str) -> List[str]:
    cfg = gate_config(gate_id)
    return list(cfg.questionnaires) if cfg else []


def gate_for_questionnaire(questionnaire_id: str) -> Optional[GateId]:
    """First gate listing `questionnaire_id` among its required questionnaires."""
    for gate_id, cfg in gates().items():
        if questionnaire_id in cfg.questionnaires:
            return gate_id
    return None


def gate_name(gate_id: str) -> str:
    cfg = gate_config(gate_id)
    return cfg.name if cfg else gate_id


def gate_label(gate_id: str) -> str:
    return GATE_LABELS.get(gate_id, gate_id)


__all__ = [
    "GateId",
    "GateConfig",
    "GATE_ORDER",
    "GATE_LABELS",
    "parse_gates",
    "gates",
    "is_valid_gate",
    "gate_index",
    "previous_gate",
    "next_gate",
    "gate_config",
    "required_questionnaires",
    "gate_for_questionnaire",
    "gate_name",
    "gate_label",
]
