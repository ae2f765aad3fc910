"""
Field-level change tracking.

Compares the previous and next snapshot of an entity over a fixed, ordered
list of field names and appends one change-log entry per field whose value
differs. Deletions produce a single synthetic entry with ``field='deleted'``.

Comparison rules:
    - ``None`` stays ``None``; every other value is compared as ``str(value)``.
    - ``None`` and ``""`` are different values, so an edit from NULL to an
      empty string is recorded.
    - A missing previous snapshot (creation) compares every field against
      ``None``.

Writes are best-effort and independent: if one entry cannot be stored the
failure is logged and the remaining fields are still attempted. There is
no transaction across entries.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from uat_tracker.models.records import ChangeLogEntry, new_id

logger = logging.getLogger(__name__)

DELETED_FIELD = "deleted"


def _normalize(value: Any) -> str | None:
    return None if value is None else str(value)


def diff_fields(previous: Any | None, next_: Any, fields: Sequence[str]) -> list[tuple[str, str | None, str | None]]:
    """Return ``[(field, old, new)]`` for every field whose value changed.

    Order follows ``fields``. Pure: no store access.
    """
    changes = []
    for name in fields:
        before = _normalize(getattr(previous, name, None)) if previous is not None else None
        after = _normalize(getattr(next_, name, None))
        if before == after:
            continue
        changes.append((name, before, after))
    return changes


def owning_project_id(entity: str, record: Any) -> str:
    """Project a history row is filed under; a project is filed under itself."""
    if entity == "project":
        return record.id
    return getattr(record, "project_id", None) or record.id


def track_changes(
    store,
    *,
    entity: str,
    previous: Any | None,
    next_: Any,
    fields: Sequence[str],
    user_name: str,
) -> list[ChangeLogEntry]:
    """Append one history row per changed field.

    Args:
        store: Gateway exposing ``append_change_log(entry)``.
        entity: One of ``CHANGE_ENTITIES``.
        previous: Snapshot before the edit, or None on creation.
        next_: Snapshot after the edit (as returned by the store).
        fields: Ordered tracked field names for ``entity``.
        user_name: Display name recorded on every row.

    Returns:
        The entries the store accepted. Rejected writes are logged only.
    """
    project_id = owning_project_id(entity, next_)
    written = []
    for name, before, after in diff_fields(previous, next_, fields):
        entry = ChangeLogEntry(
            id=new_id(),
            project_id=project_id,
            entity=entity,
            entity_id=next_.id,
            field=name,
            old_value=before,
            new_value=after,
            user_name=user_name,
        )
        saved, err = store.append_change_log(entry)
        if err:
            logger.warning(
                "Change log write failed for %s/%s.%s: %s",
                entity, next_.id, name, err.get("error"),
                extra={"project_id": project_id},
            )
            continue
        written.append(saved)
    return written


def track_deletion(
    store,
    *,
    entity: str,
    project_id: str,
    entity_id: str,
    display_value: str | None,
    user_name: str,
) -> ChangeLogEntry | None:
    """Append the single ``deleted`` entry for a removed row."""
    entry = ChangeLogEntry(
        id=new_id(),
        project_id=project_id,
        entity=entity,
        entity_id=entity_id,
        field=DELETED_FIELD,
        old_value=_normalize(display_value),
        new_value=None,
        user_name=user_name,
    )
    saved, err = store.append_change_log(entry)
    if err:
        logger.warning(
            "Change log write failed for deleted %s/%s: %s",
            entity, entity_id, err.get("error"),
            extra={"project_id": project_id},
        )
        return None
    return saved
