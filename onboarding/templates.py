from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, TypedDict, Union

from .models import CHOICE_FIELD_TYPES, QuestionField, QuestionnaireTemplate, TemplateVersion


# -----------------------------
# Validation
# -----------------------------
@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def validate_template(template: QuestionnaireTemplate) -> ValidationResult:
    """
    Collect every problem with a template's fields; never raises.
    Callers decide whether an invalid template may be saved.
    """
    errors: List[str] = []

    ids = [f.id for f in template.fields]
    if len(set(ids)) != len(ids):
        errors.append("Duplicate field IDs found")

    if any(not f.label.strip() for f in template.fields):
        errors.append("All fields must have labels")

    for f in template.fields:
        if f.type in CHOICE_FIELD_TYPES and not f.options:
            errors.append(f'Field "{f.label}" requires options')

    return ValidationResult(valid=not errors, errors=errors)


# -----------------------------
# Rendering (template snapshot -> questionnaire config)
# -----------------------------
class RenderedField(TypedDict, total=False):
    id: str
    type: str
    label: str
    required: bool
    options: List[str]
    helpText: str
    placeholder: str
    removed: bool


class RenderedSection(TypedDict):
    id: str
    title: str
    fields: List[RenderedField]


class QuestionnaireConfig(TypedDict):
    id: str
    version: str
    metadata: Dict[str, Any]
    sections: List[RenderedSection]
    validation: Dict[str, List[str]]
    documentation: List[Dict[str, Any]]
    gateCriteria: List[str]


_TEMPLATE_METADATA: Dict[str, Dict[str, Any]] = {
    "pre-contract": {
        "name": "Pre-Contract: PDM Engagement",
        "description": "Initial partner assessment and engagement",
        "gate": "pre-contract",
        "estimatedTime": 30,
        "requiredRoles": ["PDM"],
        "primaryRole": "PDM",
    },
    "gate-0": {
        "name": "Gate 0: Onboarding Kickoff",
        "description": "Validate readiness for white-glove onboarding support",
        "gate": "gate-0",
        "estimatedTime": 45,
        "requiredRoles": ["PDM"],
        "primaryRole": "PDM",
    },
    "gate-1": {
        "name": "Gate 1: Ready to Sell",
        "description": "Confirm partner is ready to sell the solution",
        "gate": "gate-1",
        "estimatedTime": 60,
        "requiredRoles": ["PAM", "PDM"],
        "primaryRole": "PAM",
    },
    "gate-2": {
        "name": "Gate 2: Ready to Order",
        "description": "Verify partner is ready to process orders",
        "gate": "gate-2",
        "estimatedTime": 45,
        "requiredRoles": ["PAM", "PDM"],
        "primaryRole": "PAM",
    },
    "gate-3": {
        "name": "Gate 3: Ready to Deliver",
        "description": "Ensure partner is ready to deliver the solution",
        "gate": "gate-3",
        "estimatedTime": 60,
        "requiredRoles": ["PAM", "TAM"],
        "primaryRole": "TAM",
    },
}


def template_metadata(template_id: str) -> Dict[str, Any]:
    meta = _TEMPLATE_METADATA.get(template_id)
    if meta is None:
        meta = {
            "name": template_id,
            "description": "Questionnaire",
            "gate": template_id,
            "estimatedTime": 30,
            "requiredRoles": ["PDM"],
            "primaryRole": "PDM",
        }
    return dict(meta)


def _render_field(f: QuestionField) -> RenderedField:
    out: RenderedField = {
        "id": f.id,
        "type": f.type,
        "label": f.label,
        "required": f.required,
    }
    # options only make sense on choice fields
    if f.type in CHOICE_FIELD_TYPES and f.options is not None:
        out["options"] = list(f.options)
    if f.help_text is not None:
        out["helpText"] = f.help_text
    if f.placeholder is not None:
        out["placeholder"] = f.placeholder
    if f.removed:
        out["removed"] = True
    return out


def template_to_config(
    template: Union[QuestionnaireTemplate, TemplateVersion],
    include_removed_fields: bool = False,
) -> QuestionnaireConfig:
    """
    Project a template snapshot into the questionnaire config the form renders.

    New submissions render with `include_removed_fields=False`: removed fields
    disappear from the form and from required-field validation. Historical
    submissions render with `True`: removed fields stay, flagged `removed`.
    The result depends only on the snapshot and the flag, so preview and
    actual rendering agree.
    """
    source = template.fields if include_removed_fields else [f for f in template.fields if not f.removed]
    ordered = sorted(source, key=lambda f: f.order)
    fields = [_render_field(f) for f in ordered]

    template_id = template.template_id if isinstance(template, TemplateVersion) else template.id

    return {
        "id": template_id,
        "version": str(template.version),
        "metadata": template_metadata(template_id),
        "sections": [{"id": "main", "title": "Questionnaire", "fields": fields}],
        "validation": {
            "requiredFields": [f["id"] for f in fields if f["required"] and not f.get("removed")],
        },
        "documentation": [],
        "gateCriteria": [],
    }


# -----------------------------
# Field list transforms (template editor)
# -----------------------------
def _renumber(fields: Sequence[QuestionField]) -> List[QuestionField]:
    """Re-derive `order` from list position; fields already in place are reused as-is."""
    out: List[QuestionField] = []
    for i, f in enumerate(fields):
        out.append(f if f.order == i else f.model_copy(update={"order": i}))
    return out


def sort_fields(fields: Sequence[QuestionField]) -> List[QuestionField]:
    return sorted(fields, key=lambda f: f.order)


def generate_field_id() -> str:
    return f"field_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def add_field(fields: Sequence[QuestionField], new_field: Optional[QuestionField] = None) -> List[QuestionField]:
    if new_field is None:
        new_field = QuestionField(id=generate_field_id(), type="text", label="New Field", required=False)
    return _renumber([*fields, new_field])


def remove_field(fields: Sequence[QuestionField], field_id: str) -> List[QuestionField]:
    """Hard delete. Unknown ids leave the list untouched."""
    if not any(f.id == field_id for f in fields):
        return list(fields)
    return _renumber([f for f in fields if f.id != field_id])


def soft_remove_field(fields: Sequence[QuestionField], field_id: str) -> List[QuestionField]:
    """Flag a field removed so historical submissions can still render it."""
    out = [f.model_copy(update={"removed": True}) if f.id == field_id else f for f in fields]
    return _renumber(out)


def reorder_fields(fields: Sequence[QuestionField], from_index: int, to_index: int) -> List[QuestionField]:
    """Swap two positions. Out-of-range indexes are a no-op."""
    n = len(fields)
    if not (0 <= from_index < n and 0 <= to_index < n):
        return list(fields)
    out = list(fields)
    out[from_index], out[to_index] = out[to_index], out[from_index]
    return _renumber(out)


def move_field_up(fields: Sequence[QuestionField], index: int) -> List[QuestionField]:
    if index <= 0:
        return list(fields)
    return reorder_fields(fields, index, index - 1)


def move_field_down(fields: Sequence[QuestionField], index: int) -> List[QuestionField]:
    if index >= len(fields) - 1:
        return list(fields)
    return reorder_fields(fields, index, index + 1)


def update_field(fields: Sequence[QuestionField], field_id: str, **changes: Any) -> List[QuestionField]:
    """Edit one field's properties. `id` and `order` are not editable here."""
    changes.pop("id", None)
    changes.pop("order", None)
    out: List[QuestionField] = []
    for f in fields:
        if f.id == field_id:
            out.append(QuestionField.model_validate({**f.model_dump(), **changes}))
        else:
            out.append(f)
    return _renumber(out)


__all__ = [
    "ValidationResult",
    "validate_template",
    "RenderedField",
    "RenderedSection",
    "QuestionnaireConfig",
    "template_metadata",
    "template_to_config",
    "sort_fields",
    "generate_field_id",
    "add_field",
    "remove_field",
    "soft_remove_field",
    "reorder_fields",
    "move_field_up",
    "move_field_down",
    "update_field",
]
