from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

logger = logging.getLogger(__name__)

# Fields that existed on stored partner records but are no longer part of the model.
DEPRECATED_PARTNER_FIELDS = ("tpmOwner", "tpm_owner")


def has_deprecated_fields(raw: Dict[str, Any]) -> bool:
    return any(raw.get(k) is not None for k in DEPRECATED_PARTNER_FIELDS)


def migrate_legacy_partner(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a stored partner document with deprecated fields stripped."""
    out = dict(raw)
    for key in DEPRECATED_PARTNER_FIELDS:
        value = out.pop(key, None)
        if value:
            logger.warning(
                "Partner %s (%s) had %s=%s - field removed during migration",
                raw.get("id"),
                raw.get("partnerName") or raw.get("partner_name"),
                key,
                value,
            )
    return out


def migrate_legacy_partners(raws: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [migrate_legacy_partner(r) for r in raws]


__all__ = [
    "DEPRECATED_PARTNER_FIELDS",
    "has_deprecated_fields",
    "migrate_legacy_partner",
    "migrate_legacy_partners",
]
