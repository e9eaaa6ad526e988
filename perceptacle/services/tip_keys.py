"""Target-key derivation for tips, and migration of legacy keys.

A tip group is stored under a namespaced key:

    usgs:<siteId>        a USGS stream-gage station
    custom:<index>       a user-created marker

Requests may name the target in three ways; :func:`resolve_key` applies a
fixed precedence so every endpoint agrees on the key.  Early versions stored
groups under the bare site id or marker index; :func:`migrate_legacy_keys`
rewrites those once at startup.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

logger = structlog.get_logger(logger_name=__name__)

USGS_PREFIX = "usgs"
CUSTOM_PREFIX = "custom"

# Bare all-digit keys of this length are USGS site numbers.
_USGS_SITE_RE = re.compile(r"^\d{7,15}$")


def resolve_key(
    key: str | None = None,
    site_id: str | int | None = None,
    marker_index: int | str | None = None,
) -> str | None:
    """Return the storage key for a tip target, or ``None`` if none is given.

    Precedence:

    1. *key* containing ``":"`` is used verbatim.
    2. A non-empty *site_id* gives ``usgs:<site_id>``.
    3. A *marker_index* that is not ``None`` (``0`` included) gives
       ``custom:<marker_index>``.

    >>> resolve_key(site_id="07055660")
    'usgs:07055660'
    >>> resolve_key(marker_index=0)
    'custom:0'
    """
    if key and ":" in str(key):
        return str(key)
    if site_id is not None and str(site_id) != "":
        return f"{USGS_PREFIX}:{site_id}"
    if marker_index is not None and str(marker_index) != "":
        return f"{CUSTOM_PREFIX}:{marker_index}"
    return None


def legacy_key_target(key: str) -> str:
    """Namespace a bare legacy key by its shape."""
    if _USGS_SITE_RE.match(key):
        return f"{USGS_PREFIX}:{key}"
    return f"{CUSTOM_PREFIX}:{key}"


def migrate_legacy_keys(tips: Any) -> tuple[dict[str, list[Any]], bool]:
    """Rewrite un-prefixed keys in a stored tip mapping.

    Already-namespaced keys are kept, so running the migration twice is a
    no-op.  A group that is not a list becomes ``[]``.  When a legacy key and
    its namespaced form both exist, the groups are concatenated with the
    namespaced group first.

    Returns
    -------
    tuple[dict, bool]
        The migrated mapping and whether anything changed.
    """
    if not isinstance(tips, dict):
        logger.warning("tip_store_not_a_mapping", found=type(tips).__name__)
        return {}, True

    migrated: dict[str, list[Any]] = {}
    changed = False

    # Prefixed groups first so a colliding legacy group is appended after them.
    for key, group in tips.items():
        if ":" in str(key):
            if not isinstance(group, list):
                group = []
                changed = True
            migrated[str(key)] = list(group)

    for key, group in tips.items():
        if ":" in str(key):
            continue
        target = legacy_key_target(str(key))
        items = group if isinstance(group, list) else []
        migrated.setdefault(target, []).extend(items)
        changed = True
        logger.info(
            "tip_key_migrated",
            legacy_key=str(key),
            new_key=target,
            tip_count=len(items),
        )

    return migrated, changed
