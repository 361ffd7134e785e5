from typing import Any, Optional
import json
import logging
import uuid

from sqlalchemy.orm import Session

from ..models import AuditEvent
from ..settings import settings

logger = logging.getLogger("nutriflow.audit")


class PipelineAudit:
    """Audit trail for one pipeline invocation.

    Created per run and passed to the stages that need it. Each record is
    added to the caller's session (committed with the main operation) and
    mirrored to the nutriflow.audit logger.
    """

    def __init__(self, db: Session, practitioner_id: str, run_id: Optional[str] = None):
        self.db = db
        self.practitioner_id = practitioner_id
        self.run_id = run_id or str(uuid.uuid4())
        self.events: list[AuditEvent] = []

    def _safe_details(self, details: Optional[dict[str, Any]]) -> dict[str, Any]:
        safe = details or {}
        # Simple JSON size guard
        try:
            json_str = json.dumps(safe, default=str)
            if len(json_str) > settings.audit_meta_max_bytes:
                logger.warning(f"Audit details too large ({len(json_str)} bytes), truncating.")
                safe = {"_error": "payload_too_large", "_original_keys": list(safe.keys())}
            else:
                safe = json.loads(json_str)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize audit details: {e}")
            safe = {"_error": "serialization_failed"}
        return safe

    def record(
        self,
        action: str,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            practitioner_id=self.practitioner_id,
            run_id=self.run_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=self._safe_details(details),
        )
        self.db.add(event)
        self.events.append(event)
        logger.info(f"[{self.run_id}] {action} {entity_type or ''} {entity_id or ''}".rstrip())
        return event

    def actions(self) -> list[str]:
        return [e.action for e in self.events]
