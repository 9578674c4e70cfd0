from __future__ import annotations

import asyncio
import json
from typing import Any, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.rbac import AccessPolicy
from onboarding.storage import (
    PARTNERS_STORE,
    SUBMISSIONS_STORE,
    TEMPLATES_STORE,
    PartnerRepository,
    SubmissionRepository,
)
from onboarding.template_store import TemplateStore

from .config import Settings, get_settings
from .db import get_db
from .models import Blob


class SqlBlobStore:
    """
    `onboarding.storage.BlobStore` over the `blobs` table.

    Session calls run in a worker thread so they never block the event loop.
    Every write commits on its own; a failed commit is rolled back so the
    session stays usable for the retry wrapper.
    """

    def __init__(self, db: Session, store: str):
        self.db = db
        self.store = store

    async def get(self, key: str) -> Optional[Any]:
        def _get():
            row = self.db.get(Blob, (self.store, key))
            return row.value if row is not None else None

        raw = await asyncio.to_thread(_get)
        return json.loads(raw) if raw is not None else None

    async def set_json(self, key: str, value: Any) -> None:
        text = json.dumps(value, ensure_ascii=False)

        def _write():
            try:
                row = self.db.get(Blob, (self.store, key))
                if row is None:
                    self.db.add(Blob(store=self.store, key=key, value=text))
                else:
                    row.value = text
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                raise

        await asyncio.to_thread(_write)

    async def delete(self, key: str) -> None:
        def _delete():
            try:
                row = self.db.get(Blob, (self.store, key))
                if row is not None:
                    self.db.delete(row)
                    self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                raise

        await asyncio.to_thread(_delete)

    async def list(self, prefix: str = "") -> List[str]:
        stmt = select(Blob.key).where(Blob.store == self.store)
        if prefix:
            stmt = stmt.where(Blob.key.startswith(prefix, autoescape=True))

        def _list():
            return list(self.db.scalars(stmt.order_by(Blob.key)))

        return await asyncio.to_thread(_list)


# -----------------------------
# FastAPI dependencies
# -----------------------------
def get_partner_repository(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PartnerRepository:
    return PartnerRepository(SqlBlobStore(db, PARTNERS_STORE), settings.retry_policy)


def get_submission_repository(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SubmissionRepository:
    return SubmissionRepository(SqlBlobStore(db, SUBMISSIONS_STORE), settings.retry_policy)


def get_template_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TemplateStore:
    return TemplateStore(SqlBlobStore(db, TEMPLATES_STORE), settings.retry_policy)


_policy = AccessPolicy()


def get_access_policy() -> AccessPolicy:
    return _policy
