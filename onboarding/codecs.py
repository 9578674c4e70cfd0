"""
Storage boundary encoders/decoders.

Every entity crosses the key-value store as a JSON document with camelCase
keys and ISO-8601 timestamps. These functions are the only place that
conversion happens.
"""
from __future__ import annotations

from typing import Any, Dict

from .migration import migrate_legacy_partner
from .models import (
    Partner,
    QuestionnaireSubmission,
    QuestionnaireTemplate,
    TemplateMetadata,
    TemplateVersion,
)


def _dump(model: Any) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def encode_partner(partner: Partner) -> Dict[str, Any]:
    return _dump(partner)


def decode_partner(data: Dict[str, Any]) -> Partner:
    return Partner.model_validate(migrate_legacy_partner(data))


def encode_submission(submission: QuestionnaireSubmission) -> Dict[str, Any]:
    return _dump(submission)


def decode_submission(data: Dict[str, Any]) -> QuestionnaireSubmission:
    return QuestionnaireSubmission.model_validate(data)


def encode_template(template: QuestionnaireTemplate) -> Dict[str, Any]:
    return _dump(template)


def decode_template(data: Dict[str, Any]) -> QuestionnaireTemplate:
    return QuestionnaireTemplate.model_validate(data)


def encode_template_version(version: TemplateVersion) -> Dict[str, Any]:
    return _dump(version)


def decode_template_version(data: Dict[str, Any]) -> TemplateVersion:
    return TemplateVersion.model_validate(data)


def encode_template_metadata(meta: TemplateMetadata) -> Dict[str, Any]:
    return _dump(meta)


def decode_template_metadata(data: Dict[str, Any]) -> TemplateMetadata:
    return TemplateMetadata.model_validate(data)


__all__ = [
    "encode_partner",
    "decode_partner",
    "encode_submission",
    "decode_submission",
    "encode_template",
    "decode_template",
    "encode_template_version",
    "decode_template_version",
    "encode_template_metadata",
    "decode_template_metadata",
]
