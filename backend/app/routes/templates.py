from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from onboarding.models import QuestionnaireTemplate, TemplateVersion
from onboarding.rbac import AuthUser, can_manage_templates
from onboarding.template_store import TemplateStore
from onboarding.templates import template_to_config, validate_template

from ..auth import get_current_user
from ..schemas import TemplateSave
from ..store import get_template_store

router = APIRouter(prefix="/templates", tags=["templates"])


def require_template_editor(user: AuthUser) -> None:
    if not can_manage_templates(user):
        raise HTTPException(status_code=403, detail="Only Admin or PDM users can manage templates")


@router.get("", response_model=list[QuestionnaireTemplate])
async def list_templates(
    user: AuthUser = Depends(get_current_user),
    templates: TemplateStore = Depends(get_template_store),
):
    require_template_editor(user)
    return await templates.list_templates()


@router.get("/{template_id}", response_model=QuestionnaireTemplate)
async def get_template(
    template_id: str,
    user: AuthUser = Depends(get_current_user),
    templates: TemplateStore = Depends(get_template_store),
):
    t = await templates.get_current_template(template_id)
    if t is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return t


@router.put("/{template_id}", response_model=QuestionnaireTemplate)
async def save_template(
    template_id: str,
    payload: TemplateSave,
    user: AuthUser = Depends(get_current_user),
    templates: TemplateStore = Depends(get_template_store),
):
    require_template_editor(user)

    candidate = QuestionnaireTemplate(id=template_id, name=payload.name, fields=payload.fields)
    result = validate_template(candidate)
    if not result.valid:
        raise HTTPException(
            status_code=400,
            detail={"message": "Template validation failed", "errors": list(result.errors)},
        )

    return await templates.save_template(candidate, user.email)


@router.get("/{template_id}/versions", response_model=list[TemplateVersion])
async def list_versions(
    template_id: str,
    user: AuthUser = Depends(get_current_user),
    templates: TemplateStore = Depends(get_template_store),
):
    require_template_editor(user)
    return await templates.list_template_versions(template_id)


@router.get("/{template_id}/versions/{version}", response_model=TemplateVersion)
async def get_version(
    template_id: str,
    version: int,
    user: AuthUser = Depends(get_current_user),
    templates: TemplateStore = Depends(get_template_store),
):
    v = await templates.get_template_version(template_id, version)
    if v is None:
        raise HTTPException(status_code=404, detail="Template version not found")
    return v


@router.get("/{template_id}/config")
async def get_config(
    template_id: str,
    version: Optional[int] = Query(default=None, ge=1),
    include_removed: bool = Query(default=False, alias="includeRemoved"),
    user: AuthUser = Depends(get_current_user),
    templates: TemplateStore = Depends(get_template_store),
) -> Dict[str, Any]:
    """Renderable questionnaire config, optionally as of a historical template version."""
    t = await templates.get_template_for_submission(template_id, version)
    if t is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return dict(template_to_config(t, include_removed_fields=include_removed))
