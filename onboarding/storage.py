from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, TypeVar

from .codecs import decode_partner, decode_submission, encode_partner, encode_submission
from .errors import StorageError, SubmissionNotFoundError
from .models import Partner, QuestionnaireSubmission, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

PARTNERS_STORE = "partners"
SUBMISSIONS_STORE = "submissions"
TEMPLATES_STORE = "templates"


# -----------------------------
# Key-value collaborator
# -----------------------------
class BlobStore(Protocol):
    """
    JSON-valued key-value store, one namespace per instance.
    Implementations: InMemoryBlobStore (tests/dev), backend SqlBlobStore.
    """

    async def get(self, key: str) -> Optional[Any]: ...

    async def set_json(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list(self, prefix: str = "") -> List[str]: ...


class InMemoryBlobStore:
    """Values are held serialized so callers never share mutable state with the store."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set_json(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


# -----------------------------
# Retry
# -----------------------------
@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    delay_seconds: float = 1.0


DEFAULT_RETRY = RetryPolicy()


async def retry_operation(operation: Callable[[], Awaitable[T]], policy: RetryPolicy = DEFAULT_RETRY) -> T:
    """
    Run `operation`, retrying any failure up to `policy.max_retries` times.
    The n-th retry waits `n * delay_seconds`. The last failure propagates.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_retries:
                raise
            attempt += 1
            delay = policy.delay_seconds * attempt
            logger.warning(
                "Storage call failed (retry %d/%d in %.2fs): %s",
                attempt,
                policy.max_retries,
                delay,
                exc,
            )
            await asyncio.sleep(delay)


async def load_all(store: BlobStore, prefix: str = "") -> List[Dict[str, Any]]:
    """Raw values under `prefix`, in key order. Missing or empty values are skipped."""
    out: List[Dict[str, Any]] = []
    for key in await store.list(prefix):
        data = await store.get(key)
        if data:
            out.append(data)
    return out


async def run_storage_call(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    message: str,
    code: str,
    error_cls: type = StorageError,
) -> T:
    try:
        return await retry_operation(operation, policy)
    except Exception as exc:
        logger.error("%s (%s): %s", message, code, exc)
        raise error_cls(message, code, exc) from exc


# -----------------------------
# Partners
# -----------------------------
class PartnerRepository:
    def __init__(self, store: BlobStore, retry: RetryPolicy = DEFAULT_RETRY):
        self.store = store
        self.retry = retry

    async def get_partner(self, partner_id: str) -> Optional[Partner]:
        async def op() -> Optional[Dict[str, Any]]:
            return await self.store.get(partner_id)

        data = await run_storage_call(
            op, self.retry, message=f"Failed to retrieve partner {partner_id}", code="GET_PARTNER_ERROR"
        )
        return decode_partner(data) if data else None

    async def save_partner(self, partner: Partner) -> Partner:
        """Persist the partner, stamping `updated_at`. Last write wins."""
        saved = partner.model_copy(update={"updated_at": utcnow()})

        async def op() -> None:
            await self.store.set_json(partner.id, encode_partner(saved))

        await run_storage_call(
            op, self.retry, message=f"Failed to save partner {partner.id}", code="SAVE_PARTNER_ERROR"
        )
        return saved

    async def list_partners(self) -> List[Partner]:
        rows = await run_storage_call(
            lambda: load_all(self.store), self.retry, message="Failed to list partners", code="LIST_PARTNERS_ERROR"
        )
        return [decode_partner(data) for data in rows]

    async def delete_partner(self, partner_id: str) -> None:
        async def op() -> None:
            await self.store.delete(partner_id)

        await run_storage_call(
            op, self.retry, message=f"Failed to delete partner {partner_id}", code="DELETE_PARTNER_ERROR"
        )


# -----------------------------
# Submissions
# -----------------------------
class SubmissionRepository:
    def __init__(self, store: BlobStore, retry: RetryPolicy = DEFAULT_RETRY):
        self.store = store
        self.retry = retry

    async def get_submission(self, submission_id: str) -> Optional[QuestionnaireSubmission]:
        async def op() -> Optional[Dict[str, Any]]:
            return await self.store.get(submission_id)

        data = await run_storage_call(
            op,
            self.retry,
            message=f"Failed to retrieve submission {submission_id}",
            code="GET_SUBMISSION_ERROR",
        )
        return decode_submission(data) if data else None

    async def require_submission(self, submission_id: str) -> QuestionnaireSubmission:
        submission = await self.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    async def save_submission(self, submission: QuestionnaireSubmission) -> QuestionnaireSubmission:
        """Persist the submission. Only `updated_at` is touched; `created_at` is kept."""
        now = utcnow()
        saved = submission.model_copy(update={"updated_at": max(now, submission.created_at)})

        async def op() -> None:
            await self.store.set_json(submission.id, encode_submission(saved))

        await run_storage_call(
            op,
            self.retry,
            message=f"Failed to save submission {submission.id}",
            code="SAVE_SUBMISSION_ERROR",
        )
        return saved

    async def list_submissions_by_partner(self, partner_id: str) -> List[QuestionnaireSubmission]:
        rows = await run_storage_call(
            lambda: load_all(self.store),
            self.retry,
            message=f"Failed to list submissions for partner {partner_id}",
            code="LIST_SUBMISSIONS_ERROR",
        )
        decoded = [decode_submission(data) for data in rows]
        return [s for s in decoded if s.partner_id == partner_id]

    async def submissions_by_id(self, partner_id: str) -> Dict[str, QuestionnaireSubmission]:
        return {s.id: s for s in await self.list_submissions_by_partner(partner_id)}

    async def delete_submission(self, submission_id: str) -> None:
        async def op() -> None:
            await self.store.delete(submission_id)

        await run_storage_call(
            op,
            self.retry,
            message=f"Failed to delete submission {submission_id}",
            code="DELETE_SUBMISSION_ERROR",
        )


__all__ = [
    "PARTNERS_STORE",
    "SUBMISSIONS_STORE",
    "TEMPLATES_STORE",
    "BlobStore",
    "InMemoryBlobStore",
    "RetryPolicy",
    "DEFAULT_RETRY",
    "retry_operation",
    "run_storage_call",
    "load_all",
    "PartnerRepository",
    "SubmissionRepository",
]
