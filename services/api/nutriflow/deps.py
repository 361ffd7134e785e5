"""FastAPI dependencies for NutriFlow API.

Provides:
- Database session dependency
- Practitioner resolution (header → env → fallback)
- Notification dispatcher
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db import get_db
from .models import Client, Practitioner
from .services.notifications import NotificationDispatcher, build_dispatcher
from .settings import settings


def get_practitioner(
    db: Session = Depends(get_db),
    x_practitioner_id: Optional[str] = Header(None, alias="X-Practitioner-Id"),
) -> Practitioner:
    """Resolve the practitioner every request is scoped to.

    Resolution order:
    1. X-Practitioner-Id header (id or slug); unknown values are a 404,
       never a silent fallback
    2. settings.default_practitioner_slug
    3. First practitioner in DB
    """
    practitioner: Optional[Practitioner] = None

    if x_practitioner_id:
        try:
            practitioner = db.get(Practitioner, str(uuid.UUID(x_practitioner_id)))
        except ValueError:
            practitioner = db.query(Practitioner).filter(Practitioner.slug == x_practitioner_id).first()

        if practitioner:
            return practitioner
        raise HTTPException(status_code=404, detail=f"Practitioner '{x_practitioner_id}' not found")

    if settings.default_practitioner_slug:
        practitioner = db.query(Practitioner).filter(
            Practitioner.slug == settings.default_practitioner_slug
        ).first()
        if practitioner:
            return practitioner

    practitioner = db.query(Practitioner).order_by(Practitioner.created_at).first()
    if practitioner:
        return practitioner

    raise HTTPException(
        status_code=404,
        detail="No practitioner found. Create one with POST /api/practitioners.",
    )


def get_client_or_404(db: Session, practitioner: Practitioner, client_id: str) -> Client:
    client = db.get(Client, client_id)
    if not client or client.practitioner_id != practitioner.id:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def get_notification_dispatcher() -> NotificationDispatcher:
    return build_dispatcher()
