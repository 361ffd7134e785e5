from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_client_or_404, get_db, get_practitioner
from ..services import progress_analysis as progress

router = APIRouter()


@router.get("/clients/{client_id}/progress", response_model=list[schemas.ProgressEntryOut])
def list_progress(
    client_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Weight history, most recent first."""
    client = get_client_or_404(db, practitioner, client_id)
    return progress.get_progress_history(db, client.id)


@router.post(
    "/clients/{client_id}/progress",
    response_model=schemas.ProgressEntryOut,
    status_code=status.HTTP_201_CREATED,
)
def record_progress(
    client_id: str,
    data: schemas.ProgressEntryCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    client = get_client_or_404(db, practitioner, client_id)
    entry = progress.record_progress(db, practitioner, client, data)
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/clients/{client_id}/progress/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_progress(
    client_id: str,
    entry_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    client = get_client_or_404(db, practitioner, client_id)
    entry = db.query(models.ProgressEntry).filter(
        models.ProgressEntry.id == entry_id,
        models.ProgressEntry.client_id == client.id,
    ).first()
    if not entry:
        raise HTTPException(status_code=404, detail="Progress entry not found")

    progress.delete_progress(db, client, entry)
    db.commit()
    return None


@router.get("/clients/{client_id}/progress/analysis", response_model=schemas.ProgressAnalysis)
def get_progress_analysis(
    client_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    client = get_client_or_404(db, practitioner, client_id)
    try:
        return progress.analyze_client(db, client)
    except progress.NoProgressDataError:
        raise HTTPException(status_code=404, detail="No progress data available")


@router.get("/clients/{client_id}/progress/report", response_model=schemas.ProgressReport)
def get_progress_report(
    client_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Analysis, template effectiveness and recommendations in one payload."""
    client = get_client_or_404(db, practitioner, client_id)
    try:
        return progress.progress_report(db, practitioner, client)
    except progress.NoProgressDataError:
        raise HTTPException(status_code=404, detail="No progress data available")
