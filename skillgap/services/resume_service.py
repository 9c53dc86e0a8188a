# resume_service.py
from sqlalchemy.orm import Session

from skillgap.models.resume import Resume
from skillgap.models.tracked_skill import TrackedSkill
from skillgap.schemas.analysis import ResumeSkill
from skillgap.schemas.resume import ResumeCreate, ResumeUpdate, TrackedSkillUpsert
from skillgap.services.analysis_cache import generate_content_hash


def get_resume(db: Session, resume_id: int) -> Resume | None:
    return db.query(Resume).filter(Resume.id == resume_id).first()


def resume_content_hash(record: Resume) -> str:
    return generate_content_hash(
        record.title,
        record.content,
        record.file_path,
        skills=resume_skills(record),
        current_role=record.current_role,
    )


def create_resume(db: Session, payload: ResumeCreate) -> Resume:
    record = Resume(
        user_id=payload.user_id,
        title=payload.title,
        content=payload.content,
        file_path=payload.file_path,
        skills=[skill.model_dump() for skill in payload.skills],
        current_role=payload.current_role,
    )
    record.content_hash = resume_content_hash(record)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_resume(db: Session, resume_id: int, payload: ResumeUpdate) -> Resume | None:
    record = get_resume(db, resume_id)
    if not record:
        return None
    changes = payload.model_dump(exclude_unset=True)
    if "skills" in changes and changes["skills"] is not None:
        changes["skills"] = [ResumeSkill(**skill).model_dump() for skill in changes["skills"]]
    for key, value in changes.items():
        if key in {"title", "content", "skills"} and value is None:
            continue
        setattr(record, key, value)
    # A new hash invalidates cached analyses for this resume; old ones stay as history.
    record.content_hash = resume_content_hash(record)
    db.commit()
    db.refresh(record)
    return record


def resume_skills(record: Resume) -> list[ResumeSkill]:
    skills: list[ResumeSkill] = []
    for entry in record.skills or []:
        if isinstance(entry, str):
            entry = {"name": entry}
        if isinstance(entry, dict) and (entry.get("name") or "").strip():
            skills.append(ResumeSkill(name=entry["name"].strip(), level=entry.get("level") or "intermediate"))
    return skills


def list_tracked_skills(db: Session, user_id: str) -> list[TrackedSkill]:
    return db.query(TrackedSkill).filter(TrackedSkill.user_id == user_id).order_by(TrackedSkill.name).all()


def upsert_tracked_skill(db: Session, payload: TrackedSkillUpsert) -> TrackedSkill:
    record = (
        db.query(TrackedSkill)
        .filter(TrackedSkill.user_id == payload.user_id, TrackedSkill.name == payload.name)
        .first()
    )
    values = payload.model_dump()
    if record:
        for key, value in values.items():
            setattr(record, key, value)
    else:
        record = TrackedSkill(**values)
        db.add(record)
    db.commit()
    db.refresh(record)
    return record
