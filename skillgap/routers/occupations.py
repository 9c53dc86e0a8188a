# occupations.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from skillgap.database import get_db
from skillgap.routers.dependencies import get_occupation_provider
from skillgap.schemas.occupation import OccupationSkills, OccupationSummary
from skillgap.services.occupation_provider import OnetOccupationProvider


router = APIRouter(prefix="/occupations", tags=["occupations"])


@router.get("/search", response_model=list[OccupationSummary])
def search_occupations(
    q: str = Query(..., min_length=2, max_length=100),
    db: Session = Depends(get_db),
    provider: OnetOccupationProvider = Depends(get_occupation_provider),
) -> list[OccupationSummary]:
    return provider.search_occupations(db, q)


@router.get("/{code}/skills", response_model=OccupationSkills)
def read_occupation_skills(
    code: str,
    response: Response,
    db: Session = Depends(get_db),
    provider: OnetOccupationProvider = Depends(get_occupation_provider),
) -> OccupationSkills:
    lookup = provider.get_occupation_skills(db, code)
    if lookup.occupation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Occupation not found")
    if lookup.stale:
        response.headers["X-Data-Stale"] = "true"
    return lookup.occupation
