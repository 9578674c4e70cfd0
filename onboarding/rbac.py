from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .models import OWNER_FIELDS, Partner, UserRole
from .topology import GATE_ORDER, GateId


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    role: UserRole
    name: str = ""


# Admin sees everything; everyone else sees only gates their role works on.
ADMIN_ROLES = frozenset({"Admin"})
TEMPLATE_EDITOR_ROLES = frozenset({"Admin", "PDM"})

ROLE_GATES: Dict[str, Tuple[GateId, ...]] = {
    "Admin": GATE_ORDER,
    "PAM": GATE_ORDER,
    "PDM": ("pre-contract", "gate-0", "gate-1"),
    "TPM": ("gate-2",),
    "PSM": ("gate-3", "post-launch"),
    "TAM": ("gate-3", "post-launch"),
}

DASHBOARD_MESSAGES: Dict[str, str] = {
    "Admin": "Viewing all partners across all gates",
    "PAM": "Viewing all your partners across all gates",
    "PDM": "Viewing your partners in Pre-Contract through Gate 1",
    "TPM": "Viewing your partners in Gate 2",
    "PSM": "Viewing your partners in Gate 3 and Post-Launch",
    "TAM": "Viewing your partners in Gate 3 and Post-Launch",
}


# -----------------------------
# Audit collaborator
# -----------------------------
class AccessAuditor(Protocol):
    def record(self, event: str, **context: Any) -> None: ...


class LoggingAccessAuditor:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("onboarding.audit")

    def record(self, event: str, **context: Any) -> None:
        self.logger.debug("access %s", event, extra={"event_type": event, "audit": context})


class NullAccessAuditor:
    def record(self, event: str, **context: Any) -> None:
        return None


# -----------------------------
# Pure helpers
# -----------------------------
def relevant_gates_for_role(role: str) -> List[GateId]:
    return list(ROLE_GATES.get(role, ()))


def can_view_gate(role: str, gate_id: str) -> bool:
    return gate_id in ROLE_GATES.get(role, ())


def is_admin(user: Optional[AuthUser]) -> bool:
    return user is not None and user.role in ADMIN_ROLES


def owner_emails(partner: Partner) -> List[str]:
    out: List[str] = []
    for name in OWNER_FIELDS:
        value = getattr(partner, name)
        if value:
            out.append(value.lower())
    return out


def is_assigned(email: str, partner: Partner) -> bool:
    return email.lower() in owner_emails(partner)


def get_assigned_partners(partners: Sequence[Partner], user_email: str) -> List[Partner]:
    return [p for p in partners if is_assigned(user_email, p)]


def is_primary_owner(user: Optional[AuthUser], partner: Partner) -> bool:
    if user is None:
        return False
    return partner.pam_owner.lower() == user.email.lower()


def can_manage_templates(user: Optional[AuthUser]) -> bool:
    return user is not None and user.role in TEMPLATE_EDITOR_ROLES


def role_dashboard_message(role: str) -> str:
    return DASHBOARD_MESSAGES.get(role, "Viewing your assigned partners")


# -----------------------------
# Policy
# -----------------------------
class AccessPolicy:
    """
    Ownership + gate-relevance access rules.

    - access: owner of the partner and the partner's current gate is relevant to the role
    - edit: owner of the partner (any gate)
    - submit: owner of the partner and the target gate is relevant to the role
    Admin passes every check.
    """

    def __init__(self, auditor: Optional[AccessAuditor] = None):
        self.auditor = auditor or LoggingAccessAuditor()

    def can_access_partner(self, user: Optional[AuthUser], partner: Partner) -> bool:
        if user is None:
            self.auditor.record("deny", reason="no-user", partner_id=partner.id)
            return False
        if is_admin(user):
            self.auditor.record("allow", reason="admin", partner_id=partner.id, user=user.email)
            return True

        owner = is_assigned(user.email, partner)
        gate_ok = can_view_gate(user.role, partner.current_gate)
        allowed = owner and gate_ok
        self.auditor.record(
            "allow" if allowed else "deny",
            reason="ownership",
            partner_id=partner.id,
            user=user.email,
            role=user.role,
            is_owner=owner,
            gate_relevant=gate_ok,
        )
        return allowed

    def filter_partners(self, partners: Sequence[Partner], user: Optional[AuthUser]) -> List[Partner]:
        if user is None:
            self.auditor.record("filter", reason="no-user", total=len(partners), visible=0)
            return []
        if is_admin(user):
            self.auditor.record("filter", reason="admin", user=user.email, total=len(partners), visible=len(partners))
            return list(partners)

        visible = [
            p for p in partners if is_assigned(user.email, p) and can_view_gate(user.role, p.current_gate)
        ]
        self.auditor.record(
            "filter",
            reason="ownership",
            user=user.email,
            role=user.role,
            total=len(partners),
            visible=len(visible),
        )
        return visible

    def group_partners_by_gate(self, partners: Sequence[Partner], user: Optional[AuthUser]) -> Dict[str, List[Partner]]:
        grouped: Dict[str, List[Partner]] = {g: [] for g in GATE_ORDER}
        for p in self.filter_partners(partners, user):
            grouped[p.current_gate].append(p)
        return grouped

    def can_edit_partner(self, user: Optional[AuthUser], partner: Partner) -> bool:
        if user is None:
            return False
        if is_admin(user):
            return True
        return is_assigned(user.email, partner)

    def can_submit_questionnaire(self, user: Optional[AuthUser], partner: Partner, gate_id: str) -> bool:
        if user is None:
            return False
        if is_admin(user):
            return True
        return is_assigned(user.email, partner) and can_view_gate(user.role, gate_id)

    def can_edit_questionnaire(self, user: Optional[AuthUser], partner: Partner) -> bool:
        return self.can_edit_partner(user, partner)


__all__ = [
    "AuthUser",
    "ADMIN_ROLES",
    "TEMPLATE_EDITOR_ROLES",
    "ROLE_GATES",
    "AccessAuditor",
    "LoggingAccessAuditor",
    "NullAccessAuditor",
    "relevant_gates_for_role",
    "can_view_gate",
    "is_admin",
    "owner_emails",
    "is_assigned",
    "get_assigned_partners",
    "is_primary_owner",
    "can_manage_templates",
    "role_dashboard_message",
    "AccessPolicy",
]
