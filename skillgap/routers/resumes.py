# resumes.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from skillgap.database import get_db
from skillgap.schemas.resume import ResumeCreate, ResumeRead, ResumeUpdate, TrackedSkillRead, TrackedSkillUpsert
from skillgap.services import resume_service


router = APIRouter(tags=["resumes"])


@router.post("/resumes", response_model=ResumeRead, status_code=status.HTTP_201_CREATED)
def create_resume(payload: ResumeCreate, db: Session = Depends(get_db)) -> ResumeRead:
    record = resume_service.create_resume(db, payload)
    return ResumeRead.model_validate(record)


@router.get("/resumes/{resume_id}", response_model=ResumeRead)
def read_resume(resume_id: int, db: Session = Depends(get_db)) -> ResumeRead:
    record = resume_service.get_resume(db, resume_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
    return ResumeRead.model_validate(record)


@router.put("/resumes/{resume_id}", response_model=ResumeRead)
def update_resume(resume_id: int, payload: ResumeUpdate, db: Session = Depends(get_db)) -> ResumeRead:
    record = resume_service.update_resume(db, resume_id, payload)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
    return ResumeRead.model_validate(record)


@router.post("/skills", response_model=TrackedSkillRead)
def upsert_tracked_skill(payload: TrackedSkillUpsert, db: Session = Depends(get_db)) -> TrackedSkillRead:
    record = resume_service.upsert_tracked_skill(db, payload)
    return TrackedSkillRead.model_validate(record)


@router.get("/skills", response_model=list[TrackedSkillRead])
def list_tracked_skills(user_id: str = Query(..., min_length=1), db: Session = Depends(get_db)) -> list[TrackedSkillRead]:
    return [TrackedSkillRead.model_validate(record) for record in resume_service.list_tracked_skills(db, user_id)]
