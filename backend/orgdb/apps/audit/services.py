from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    *,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id,
    action: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
) -> models.AuditEvent:
    """
    Add an audit row to the caller's transaction.

    Nothing is flushed here: the row is written with the change it
    describes, or not at all when the request rolls back.
    """
    event = models.AuditEvent(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor_user_id=actor_user_id,
        before=before,
        after=after,
    )
    db.add(event)
    logger.debug(
        "audit %s %s",
        action,
        entity_type,
        extra={"entity_id": event.entity_id, "actor_user_id": actor_user_id},
    )
    return event
