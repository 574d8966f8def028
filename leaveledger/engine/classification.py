"""
Leave-type to pool classification.

Leave types are tagged with a pool (CL, SL or EL) when they are
configured. Types created before the tag existed are matched by their
code or by keywords in their name; that path logs a warning so the type
can be tagged properly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

LEAVE_POOLS = ("CL", "SL", "EL")

_LEGACY_NAME_KEYWORDS: dict[str, tuple[str, ...]] = {
    "CL": ("casual",),
    "SL": ("sick",),
    "EL": ("earned", "vacation"),
}


@dataclass(frozen=True)
class LeaveTypeRef:
    id: int
    code: str
    name: str
    pool: str | None = None


def _legacy_pool(code: str, name: str) -> str | None:
    code = (code or "").strip().upper()
    if code in LEAVE_POOLS:
        return code
    lowered = (name or "").lower()
    for pool, keywords in _LEGACY_NAME_KEYWORDS.items():
        if any(k in lowered for k in keywords):
            return pool
    return None


def classify_leave_type(leave_type: LeaveTypeRef) -> str | None:
    """Return ``"CL"``, ``"SL"``, ``"EL"`` or ``None`` when unmatched."""
    if leave_type.pool:
        pool = leave_type.pool.upper()
        if pool in LEAVE_POOLS:
            return pool
        logger.warning(
            "Leave type %s (%s) has unknown pool tag %r",
            leave_type.id,
            leave_type.code,
            leave_type.pool,
        )
        return None

    pool = _legacy_pool(leave_type.code, leave_type.name)
    if pool is not None:
        logger.warning(
            "Leave type %s (%s / %s) has no pool tag; matched %s by code/name",
            leave_type.id,
            leave_type.code,
            leave_type.name,
            pool,
        )
    return pool


@dataclass
class Classifier:
    """Caches classifications and remembers which types matched nothing."""

    _cache: dict[int, str | None] = field(default_factory=dict)
    unmatched: dict[int, LeaveTypeRef] = field(default_factory=dict)

    def classify(self, leave_type: LeaveTypeRef) -> str | None:
        if leave_type.id not in self._cache:
            pool = classify_leave_type(leave_type)
            self._cache[leave_type.id] = pool
            if pool is None:
                logger.warning(
                    "Leave type %s (%s / %s) excluded from CL/SL/EL totals",
                    leave_type.id,
                    leave_type.code,
                    leave_type.name,
                )
                self.unmatched[leave_type.id] = leave_type
        return self._cache[leave_type.id]

    def warnings_for(self, type_ids: Iterable[int]) -> list[str]:
        return [
            f"Leave type '{self.unmatched[i].name}' ({self.unmatched[i].code}) "
            "is not tagged CL/SL/EL and was excluded"
            for i in sorted(set(type_ids))
            if i in self.unmatched
        ]
