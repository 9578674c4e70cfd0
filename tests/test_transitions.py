from datetime import timedelta

import pytest

from onboarding.errors import GateNotInitializedError, GateNotReachedError
from onboarding.models import ApprovalSignature, GateProgress
from onboarding.transitions import block_gate, complete_gate, initialize_gate_progress, link_submission

SIG = ApprovalSignature(type="typed", data="Pat Owner")


def test_initialize_gate_progress():
    p = initialize_gate_progress("gate-2")
    assert p.gate_id == "gate-2"
    assert p.status == "not-started"
    assert p.questionnaires == {}
    assert p.approvals == []


def test_complete_gate_chain(make_partner, t0):
    partner = make_partner(
        gates={
            "pre-contract": GateProgress(
                gate_id="pre-contract",
                status="passed",
                questionnaires={"pre-contract-pdm": "s1"},
            )
        }
    )
    now = t0 + timedelta(days=3)

    out = complete_gate(partner, "pre-contract", "pam@example.com", "PAM", SIG, "looks good", now=now)

    assert out.current_gate == "gate-0"
    assert out.gates["gate-0"].status == "not-started"
    assert out.gates["gate-0"].questionnaires == {}

    done = out.gates["pre-contract"]
    assert done.status == "passed"
    assert done.completed_date == now
    assert done.blockers == []
    assert len(done.approvals) == 1
    assert done.approvals[0].approved_by == "pam@example.com"
    assert done.approvals[0].approved_by_role == "PAM"
    assert done.approvals[0].notes == "looks good"
    assert out.updated_at == now

    # input untouched
    assert partner.current_gate == "pre-contract"
    assert "gate-0" not in partner.gates
    assert partner.gates["pre-contract"].approvals == []


def test_complete_gate_keeps_existing_next_record(make_partner):
    existing = GateProgress(gate_id="gate-1", questionnaires={"gate-1-ready-to-sell": "s9"})
    partner = make_partner(
        current_gate="gate-0",
        gates={"gate-0": GateProgress(gate_id="gate-0"), "gate-1": existing},
    )
    out = complete_gate(partner, "gate-0", "pam@example.com", "PAM", SIG)
    assert out.gates["gate-1"].questionnaires == {"gate-1-ready-to-sell": "s9"}


def test_complete_last_gate_stays_put(make_partner):
    partner = make_partner(current_gate="post-launch")
    out = complete_gate(partner, "post-launch", "admin@example.com", "Admin", SIG)
    assert out.current_gate == "post-launch"
    assert out.gates["post-launch"].status == "passed"


def test_complete_uninitialized_gate_raises(make_partner):
    with pytest.raises(GateNotInitializedError) as exc:
        complete_gate(make_partner(), "gate-2", "pam@example.com", "PAM", SIG)
    assert exc.value.gate_id == "gate-2"
    assert "gate-2" in str(exc.value)


def test_block_gate(make_partner, t0):
    partner = make_partner()
    out = block_gate(partner, "pre-contract", ["Legal review pending"], now=t0)
    assert out.gates["pre-contract"].status == "blocked"
    assert out.gates["pre-contract"].blockers == ["Legal review pending"]
    assert partner.gates["pre-contract"].status == "not-started"


def test_block_uninitialized_gate_raises(make_partner):
    with pytest.raises(GateNotInitializedError):
        block_gate(make_partner(), "gate-3", ["x"])


def test_link_submission_starts_gate_and_recomputes(make_partner, make_submission, t0):
    partner = make_partner(gates={})
    subs = {"s1": make_submission("s1", "pre-contract-pdm", "pass")}

    out = link_submission(partner, "pre-contract", "pre-contract-pdm", "s1", subs, now=t0)

    progress = out.gates["pre-contract"]
    assert progress.questionnaires == {"pre-contract-pdm": "s1"}
    assert progress.started_date == t0
    assert progress.status == "passed"


def test_link_submission_keeps_first_start_date(make_partner, make_submission, t0):
    started = GateProgress(gate_id="gate-0", started_date=t0)
    partner = make_partner(current_gate="gate-0", gates={"gate-0": started})
    subs = {"s2": make_submission("s2", "gate-0-kickoff", "partial")}

    out = link_submission(partner, "gate-0", "gate-0-kickoff", "s2", subs, now=t0 + timedelta(days=5))
    assert out.gates["gate-0"].started_date == t0
    assert out.gates["gate-0"].status == "in-progress"


def test_link_submission_leaves_blocked_gate_blocked(make_partner, make_submission):
    blocked = GateProgress(gate_id="gate-0", status="blocked", blockers=["Missing W-9"])
    partner = make_partner(current_gate="gate-0", gates={"gate-0": blocked})
    subs = {"s3": make_submission("s3", "gate-0-kickoff", "pass")}

    out = link_submission(partner, "gate-0", "gate-0-kickoff", "s3", subs)
    assert out.gates["gate-0"].status == "blocked"


def test_link_submission_refuses_unreached_gate(make_partner, make_submission):
    partner = make_partner()
    subs = {"s4": make_submission("s4", "gate-2-ready-to-order", "pass")}

    with pytest.raises(GateNotReachedError) as exc:
        link_submission(partner, "gate-2", "gate-2-ready-to-order", "s4", subs)

    assert exc.value.gate_id == "gate-2"
    assert exc.value.current_gate == "pre-contract"
    assert list(partner.gates) == ["pre-contract"]
