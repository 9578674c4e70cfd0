from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from .codecs import (
    decode_template,
    decode_template_metadata,
    decode_template_version,
    encode_template,
    encode_template_metadata,
    encode_template_version,
)
from .errors import TemplateStorageError
from .models import QuestionnaireTemplate, TemplateMetadata, TemplateVersion, utcnow
from .storage import DEFAULT_RETRY, BlobStore, RetryPolicy, load_all, run_storage_call

logger = logging.getLogger(__name__)

CURRENT_PREFIX = "current/"
VERSIONS_PREFIX = "versions/"
METADATA_KEY = "metadata"


def current_key(template_id: str) -> str:
    return f"{CURRENT_PREFIX}{template_id}"


def version_key(template_id: str, version: int) -> str:
    return f"{VERSIONS_PREFIX}{template_id}/{version}"


class TemplateStore:
    """
    Questionnaire templates with an append-only version history.

    `current/<id>` holds the live template; every save first archives the
    live snapshot under `versions/<id>/<n>` and then writes version n + 1.
    """

    def __init__(self, store: BlobStore, retry: RetryPolicy = DEFAULT_RETRY):
        self.store = store
        self.retry = retry

    async def _call(self, op, *, message: str, code: str):
        return await run_storage_call(op, self.retry, message=message, code=code, error_cls=TemplateStorageError)

    # -----------------------------
    # Point lookups
    # -----------------------------
    async def get_current_template(self, template_id: str) -> Optional[QuestionnaireTemplate]:
        async def op() -> Optional[Dict[str, Any]]:
            return await self.store.get(current_key(template_id))

        data = await self._call(op, message=f"Failed to retrieve template {template_id}", code="GET_TEMPLATE_ERROR")
        return decode_template(data) if data else None

    async def get_template_version(self, template_id: str, version: int) -> Optional[TemplateVersion]:
        async def op() -> Optional[Dict[str, Any]]:
            return await self.store.get(version_key(template_id, version))

        data = await self._call(
            op,
            message=f"Failed to retrieve template {template_id} version {version}",
            code="GET_TEMPLATE_VERSION_ERROR",
        )
        return decode_template_version(data) if data else None

    # -----------------------------
    # Save (archive + bump)
    # -----------------------------
    async def save_template(self, template: QuestionnaireTemplate, updated_by: str) -> QuestionnaireTemplate:
        logger.info("Saving template %s", template.id)

        current = await self.get_current_template(template.id)
        new_version = 1

        if current is not None:
            new_version = current.version + 1
            archived = TemplateVersion(
                template_id=current.id,
                version=current.version,
                fields=current.fields,
                created_at=current.updated_at,
                created_by=current.updated_by,
            )

            async def archive() -> None:
                await self.store.set_json(version_key(current.id, current.version), encode_template_version(archived))

            await self._call(archive, message=f"Failed to save template {template.id}", code="SAVE_TEMPLATE_ERROR")
            logger.info("Archived template %s version %d", current.id, current.version)

        updated = template.model_copy(
            deep=True,
            update={"version": new_version, "updated_at": utcnow(), "updated_by": updated_by},
        )
        if current is not None:
            updated.created_at = current.created_at

        async def write() -> None:
            await self.store.set_json(current_key(template.id), encode_template(updated))

        await self._call(write, message=f"Failed to save template {template.id}", code="SAVE_TEMPLATE_ERROR")
        logger.info("Saved template %s as version %d", template.id, new_version)

        await self._update_metadata(template.id)
        return updated

    async def _update_metadata(self, template_id: str) -> None:
        """Keep the template index current. Failure here does not fail the save."""
        try:
            data = await self.store.get(METADATA_KEY)
            meta = decode_template_metadata(data) if data else TemplateMetadata(templates=[])
            meta.last_updated = utcnow()
            if template_id not in meta.templates:
                meta.templates.append(template_id)
            await self.store.set_json(METADATA_KEY, encode_template_metadata(meta))
        except Exception:
            logger.exception("Error updating template metadata for %s", template_id)

    async def get_metadata(self) -> Optional[TemplateMetadata]:
        async def op() -> Optional[Dict[str, Any]]:
            return await self.store.get(METADATA_KEY)

        data = await self._call(op, message="Failed to retrieve template metadata", code="GET_METADATA_ERROR")
        return decode_template_metadata(data) if data else None

    # -----------------------------
    # Listings
    # -----------------------------
    async def list_templates(self) -> List[QuestionnaireTemplate]:
        rows = await self._call(
            lambda: load_all(self.store, CURRENT_PREFIX),
            message="Failed to list templates",
            code="LIST_TEMPLATES_ERROR",
        )
        return [decode_template(data) for data in rows]

    async def list_template_versions(self, template_id: str) -> List[TemplateVersion]:
        """Archived versions, newest first."""

        rows = await self._call(
            lambda: load_all(self.store, f"{VERSIONS_PREFIX}{template_id}/"),
            message=f"Failed to list versions for template {template_id}",
            code="LIST_TEMPLATE_VERSIONS_ERROR",
        )
        versions = [decode_template_version(data) for data in rows]
        versions.sort(key=lambda v: v.version, reverse=True)
        return versions

    # -----------------------------
    # Historical rendering
    # -----------------------------
    async def get_template_for_submission(
        self, template_id: str, template_version: Optional[int] = None
    ) -> Optional[Union[QuestionnaireTemplate, TemplateVersion]]:
        """
        Template shape a submission was filled against.

        An archived snapshot wins when one exists for `template_version`;
        otherwise (never archived, or the version is still current) the
        current template is returned.
        """
        if template_version is None:
            return await self.get_current_template(template_id)

        archived = await self.get_template_version(template_id, template_version)
        if archived is not None:
            return archived

        current = await self.get_current_template(template_id)
        if current is None or current.version != template_version:
            logger.warning(
                "Version %s not found for %s, falling back to current",
                template_version,
                template_id,
            )
        return current


__all__ = ["CURRENT_PREFIX", "VERSIONS_PREFIX", "METADATA_KEY", "current_key", "version_key", "TemplateStore"]
