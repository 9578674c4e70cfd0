from __future__ import annotations

from typing import Mapping

from .models import GateProgress, GateStatus, QuestionnaireSubmission
from .topology import gate_config


SubmissionsById = Mapping[str, QuestionnaireSubmission]


def is_gate_complete(progress: GateProgress) -> bool:
    return progress.status == "passed"


def are_all_questionnaires_complete(progress: GateProgress, submissions: SubmissionsById) -> bool:
    """True when every required questionnaire has a linked submission that passed."""
    cfg = gate_config(progress.gate_id)
    if cfg is None:
        return False
    if not cfg.questionnaires:
        return True

    for questionnaire_id in cfg.questionnaires:
        submission_id = progress.questionnaires.get(questionnaire_id)
        if not submission_id:
            return False
        submission = submissions.get(submission_id)
        if submission is None or submission.overall_status != "pass":
            return False
    return True


def calculate_gate_status(progress: GateProgress, submissions: SubmissionsById) -> GateStatus:
    """
    Derive a gate's status from its questionnaire submissions.

    - gate without questionnaires: passed once started, otherwise not-started
    - nothing linked yet: not-started
    - every required questionnaire linked and passing: passed
    - any linked submission failed: failed
    - anything else (missing, partial, pending): in-progress
    """
    cfg = gate_config(progress.gate_id)
    if cfg is None:
        return "not-started"

    if not cfg.questionnaires:
        return "passed" if progress.started_date else "not-started"

    if not progress.questionnaires:
        return "not-started"

    if are_all_questionnaires_complete(progress, submissions):
        return "passed"

    for questionnaire_id in cfg.questionnaires:
        submission_id = progress.questionnaires.get(questionnaire_id)
        submission = submissions.get(submission_id) if submission_id else None
        if submission is not None and submission.overall_status == "fail":
            return "failed"

    return "in-progress"


def gate_completion_percentage(progress: GateProgress, submissions: SubmissionsById) -> int:
    cfg = gate_config(progress.gate_id)
    if cfg is None or not cfg.questionnaires:
        return 100 if progress.status == "passed" else 0

    passed = 0
    for questionnaire_id in cfg.questionnaires:
        submission_id = progress.questionnaires.get(questionnaire_id)
        submission = submissions.get(submission_id) if submission_id else None
        if submission is not None and submission.overall_status == "pass":
            passed += 1

    # round half up
    return int(100 * passed / len(cfg.questionnaires) + 0.5)


__all__ = [
    "SubmissionsById",
    "is_gate_complete",
    "are_all_questionnaires_complete",
    "calculate_gate_status",
    "gate_completion_percentage",
]
