from __future__ import annotations

from typing import Optional


class OnboardingError(Exception):
    """Base class for partner onboarding failures."""


class GateNotInitializedError(OnboardingError):
    """
    Raised when a mutation targets a gate the partner has no progress record for.
    A gate must be initialized (reached) before it can be completed or blocked.
    """

    def __init__(self, gate_id: str):
        super().__init__(f"Gate {gate_id} not found in partner record")
        self.gate_id = gate_id


class GateNotReachedError(OnboardingError):
    """Raised when activity is recorded against a gate later than the partner's current gate."""

    def __init__(self, gate_id: str, current_gate: str):
        super().__init__(f"Gate {gate_id} has not been reached; partner is at {current_gate}")
        self.gate_id = gate_id
        self.current_gate = current_gate


class SubmissionNotFoundError(OnboardingError):
    def __init__(self, submission_id: str):
        super().__init__(f"Submission {submission_id} not found")
        self.submission_id = submission_id


class StorageError(OnboardingError):
    """Storage call failed after all retries. `code` names the operation."""

    def __init__(self, message: str, code: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        self.original_error = original_error


class TemplateStorageError(StorageError):
    pass


__all__ = [
    "OnboardingError",
    "GateNotInitializedError",
    "GateNotReachedError",
    "SubmissionNotFoundError",
    "StorageError",
    "TemplateStorageError",
]
