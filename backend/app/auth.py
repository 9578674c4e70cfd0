from __future__ import annotations

from typing import get_args

from fastapi import Header, HTTPException

from onboarding.models import UserRole
from onboarding.rbac import AuthUser

KNOWN_ROLES = frozenset(get_args(UserRole))


def get_current_user(
    x_user_email: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> AuthUser:
    """
    Header auth stub.

    The identity provider in front of the app is expected to set
    X-User-Email and X-User-Role; both are required.
    """
    if not x_user_email or not x_user_role:
        raise HTTPException(
            status_code=401,
            detail="Missing auth. Provide X-User-Email and X-User-Role headers.",
        )
    if x_user_role not in KNOWN_ROLES:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}")

    email = x_user_email.strip().lower()
    return AuthUser(id=email, email=email, role=x_user_role)
