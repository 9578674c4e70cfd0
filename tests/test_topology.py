import pytest
import yaml

from onboarding.topology import (
    GATE_ORDER,
    gate_for_questionnaire,
    gate_index,
    gate_label,
    gate_name,
    gates,
    is_valid_gate,
    next_gate,
    parse_gates,
    previous_gate,
    required_questionnaires,
)


def test_gate_registry_matches_fixed_order(root):
    raw = yaml.safe_load((root / "onboarding" / "gates.yaml").read_text(encoding="utf-8"))
    assert [g["id"] for g in raw["gates"]] == list(GATE_ORDER)
    assert list(gates()) == list(GATE_ORDER)


def test_order_lookups():
    assert gate_index("pre-contract") == 0
    assert gate_index("post-launch") == len(GATE_ORDER) - 1
    assert gate_index("gate-9") == -1

    assert previous_gate("pre-contract") is None
    assert previous_gate("gate-1") == "gate-0"
    assert next_gate("gate-3") == "post-launch"
    assert next_gate("post-launch") is None
    assert next_gate("nope") is None

    assert is_valid_gate("gate-2")
    assert not is_valid_gate("gate-5")


def test_required_questionnaires():
    assert required_questionnaires("pre-contract") == ["pre-contract-pdm"]
    assert required_questionnaires("gate-0") == ["gate-0-kickoff"]
    assert required_questionnaires("gate-2") == ["gate-2-ready-to-order"]
    assert required_questionnaires("post-launch") == []
    assert required_questionnaires("unknown") == []


def test_questionnaire_to_gate_lookup():
    assert gate_for_questionnaire("gate-1-ready-to-sell") == "gate-1"
    assert gate_for_questionnaire("custom-survey") is None


def test_names_and_labels():
    assert gate_name("gate-0") == "Gate 0: Onboarding Kickoff"
    assert gate_name("unknown") == "unknown"
    assert gate_label("pre-contract") == "Pre-Contract: PDM Engagement"
    assert gate_label("post-launch") == "Post-Launch"


def test_parse_gates_rejects_reordered_registry():
    raw = {
        "gates": [
            {"id": g, "name": g, "questionnaires": []}
            for g in ["gate-0", "pre-contract", "gate-1", "gate-2", "gate-3", "post-launch"]
        ]
    }
    with pytest.raises(ValueError):
        parse_gates(raw)


def test_parse_gates_accepts_json_shape():
    raw = {"gates": [{"id": g, "name": g.upper(), "questionnaires": [f"{g}-q"]} for g in GATE_ORDER]}
    parsed = parse_gates(raw)
    assert parsed["gate-2"].questionnaires == ("gate-2-q",)
    assert parsed["gate-2"].name == "GATE-2"
