import re

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_db, get_practitioner

router = APIRouter()


def generate_slug(name: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')
    return slug or "practitioner"


@router.get("/practitioners", response_model=list[schemas.PractitionerOut])
def list_practitioners(db: Session = Depends(get_db)):
    return db.query(models.Practitioner).order_by(models.Practitioner.created_at).all()


@router.post("/practitioners", response_model=schemas.PractitionerOut, status_code=status.HTTP_201_CREATED)
def create_practitioner(data: schemas.PractitionerCreate, db: Session = Depends(get_db)):
    """Create a practitioner with an auto-generated unique slug."""
    slug_base = generate_slug(data.name)
    slug = slug_base
    counter = 1
    while db.query(models.Practitioner).filter(models.Practitioner.slug == slug).first():
        slug = f"{slug_base}-{counter}"
        counter += 1

    practitioner = models.Practitioner(name=data.name, email=data.email, slug=slug)
    try:
        db.add(practitioner)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Could not create practitioner")
    db.refresh(practitioner)
    return practitioner


@router.get("/clients", response_model=list[schemas.ClientOut])
def list_clients(
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    return (
        db.query(models.Client)
        .filter(models.Client.practitioner_id == practitioner.id)
        .order_by(models.Client.name)
        .all()
    )


@router.post("/clients", response_model=schemas.ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    data: schemas.ClientCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    client = models.Client(practitioner_id=practitioner.id, **data.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    return client
