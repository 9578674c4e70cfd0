import logging

import pytest

from onboarding.rbac import (
    AccessPolicy,
    AuthUser,
    LoggingAccessAuditor,
    NullAccessAuditor,
    can_manage_templates,
    can_view_gate,
    get_assigned_partners,
    is_primary_owner,
    owner_emails,
    relevant_gates_for_role,
    role_dashboard_message,
)


class RecordingAuditor:
    def __init__(self):
        self.events = []

    def record(self, event, **context):
        self.events.append((event, context))


def _user(email, role):
    return AuthUser(id=email, email=email, role=role)


ADMIN = _user("admin@example.com", "Admin")
PAM = _user("pam@example.com", "PAM")
PDM = _user("pdm@example.com", "PDM")
TPM = _user("tpm@example.com", "TPM")
PSM = _user("psm@example.com", "PSM")


@pytest.fixture
def auditor():
    return RecordingAuditor()


@pytest.fixture
def policy(auditor):
    return AccessPolicy(auditor)


@pytest.fixture
def portfolio(make_partner):
    return [
        make_partner("p-pre", "pre-contract", pdm_owner="pdm@example.com"),
        make_partner("p-g1", "gate-1", pdm_owner="pdm@example.com", psm_owner="psm@example.com"),
        make_partner("p-g2", "gate-2", pdm_owner="pdm@example.com"),
        make_partner("p-g3", "gate-3", psm_owner="psm@example.com"),
        make_partner("p-other", "gate-0", pam_owner="someone-else@example.com"),
    ]


def _ids(partners):
    return [p.id for p in partners]


def test_role_gate_relevance():
    assert relevant_gates_for_role("PDM") == ["pre-contract", "gate-0", "gate-1"]
    assert relevant_gates_for_role("TPM") == ["gate-2"]
    assert relevant_gates_for_role("TAM") == ["gate-3", "post-launch"]
    assert len(relevant_gates_for_role("Admin")) == 6
    assert relevant_gates_for_role("Nobody") == []
    assert can_view_gate("PSM", "post-launch")
    assert not can_view_gate("PSM", "gate-1")


def test_admin_sees_everything(policy, portfolio):
    assert _ids(policy.filter_partners(portfolio, ADMIN)) == _ids(portfolio)
    assert all(policy.can_access_partner(ADMIN, p) for p in portfolio)


def test_no_user_sees_nothing(policy, portfolio, auditor):
    assert policy.filter_partners(portfolio, None) == []
    assert not policy.can_access_partner(None, portfolio[0])
    assert auditor.events[-1][1]["reason"] == "no-user"


def test_owner_and_gate_relevance_both_required(policy, portfolio):
    # PDM owns p-g2 but gate-2 is outside the PDM gates
    assert _ids(policy.filter_partners(portfolio, PDM)) == ["p-pre", "p-g1"]
    # PSM owns p-g1 (wrong gate) and p-g3
    assert _ids(policy.filter_partners(portfolio, PSM)) == ["p-g3"]
    # PAM owns everything except p-other and sees every gate
    assert _ids(policy.filter_partners(portfolio, PAM)) == ["p-pre", "p-g1", "p-g2", "p-g3"]
    assert policy.filter_partners(portfolio, TPM) == []


def test_filter_matches_access_check(policy, portfolio):
    for user in (ADMIN, PAM, PDM, TPM, PSM):
        visible = set(_ids(policy.filter_partners(portfolio, user)))
        expected = {p.id for p in portfolio if policy.can_access_partner(user, p)}
        assert visible == expected


def test_email_match_is_case_insensitive(policy, make_partner):
    partner = make_partner(pam_owner="Pam@Example.COM")
    assert policy.can_access_partner(PAM, partner)
    assert owner_emails(partner) == ["pam@example.com"]


def test_deprecated_tpm_role_cannot_own(policy, make_partner):
    partner = make_partner("p", "gate-2")
    assert not policy.can_access_partner(TPM, partner)
    assert not policy.can_edit_partner(TPM, partner)


def test_edit_requires_ownership_at_any_gate(policy, portfolio):
    g2 = portfolio[2]
    assert policy.can_edit_partner(PDM, g2)
    assert policy.can_edit_questionnaire(PDM, g2)
    assert not policy.can_edit_partner(PSM, g2)
    assert policy.can_edit_partner(ADMIN, g2)
    assert not policy.can_edit_partner(None, g2)


def test_submit_requires_ownership_and_target_gate(policy, portfolio):
    g1 = portfolio[1]
    assert policy.can_submit_questionnaire(PDM, g1, "gate-1")
    assert not policy.can_submit_questionnaire(PDM, g1, "gate-2")
    assert policy.can_submit_questionnaire(PSM, g1, "gate-3")
    assert not policy.can_submit_questionnaire(PSM, portfolio[4], "gate-3")
    assert policy.can_submit_questionnaire(ADMIN, g1, "post-launch")


def test_group_partners_by_gate(policy, portfolio):
    grouped = policy.group_partners_by_gate(portfolio, PAM)
    assert list(grouped) == ["pre-contract", "gate-0", "gate-1", "gate-2", "gate-3", "post-launch"]
    assert _ids(grouped["gate-1"]) == ["p-g1"]
    assert grouped["gate-0"] == []


def test_assignment_helpers(portfolio):
    assert _ids(get_assigned_partners(portfolio, "PSM@example.com")) == ["p-g1", "p-g3"]
    assert is_primary_owner(PAM, portfolio[0])
    assert not is_primary_owner(PDM, portfolio[0])
    assert not is_primary_owner(None, portfolio[0])


def test_template_management_roles():
    assert can_manage_templates(ADMIN)
    assert can_manage_templates(PDM)
    assert not can_manage_templates(PAM)
    assert not can_manage_templates(None)


def test_dashboard_messages():
    assert "Gate 2" in role_dashboard_message("TPM")
    assert role_dashboard_message("Unknown") == "Viewing your assigned partners"


def test_decisions_go_through_the_auditor(policy, auditor, portfolio):
    policy.can_access_partner(PDM, portfolio[2])
    event, context = auditor.events[-1]
    assert event == "deny"
    assert context["is_owner"] is True
    assert context["gate_relevant"] is False


def test_logging_auditor_writes_debug_records(caplog, make_partner):
    policy = AccessPolicy(LoggingAccessAuditor())
    with caplog.at_level(logging.DEBUG, logger="onboarding.audit"):
        policy.can_access_partner(PAM, make_partner())
    records = [r for r in caplog.records if r.name == "onboarding.audit"]
    assert records and records[0].levelno == logging.DEBUG
    assert records[0].event_type == "allow"


def test_null_auditor_is_silent(caplog, make_partner):
    policy = AccessPolicy(NullAccessAuditor())
    with caplog.at_level(logging.DEBUG):
        policy.filter_partners([make_partner()], PAM)
    assert not [r for r in caplog.records if r.name == "onboarding.audit"]
