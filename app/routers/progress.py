from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.models.classroom import Classroom
from app.models.profile import Profile
from app.models.student_enrollment import StudentEnrollment
from app.models.student_progress import StudentProgress
from app.schemas.progress import ProgressCreate, ProgressRecord

router = APIRouter(tags=["progress"])


def _ensure_classroom_exists(db: Session, classroom_id: str) -> Classroom:
    classroom = db.query(Classroom).filter(Classroom.id == classroom_id).first()
    if not classroom:
        raise HTTPException(status_code=404, detail="Classroom not found")
    return classroom


def _ensure_student_exists(db: Session, student_id: str) -> Profile:
    student = db.query(Profile).filter(Profile.id == student_id, Profile.role == "student").first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def _ensure_student_enrolled(db: Session, classroom_id: str, student_id: str) -> None:
    enrolled = (
        db.query(StudentEnrollment)
        .filter(StudentEnrollment.classroom_id == classroom_id, StudentEnrollment.student_id == student_id)
        .first()
        is not None
    )
    if not enrolled:
        raise HTTPException(status_code=403, detail="Student is not enrolled in this classroom")


@router.post("/progress", response_model=ProgressRecord, status_code=status.HTTP_201_CREATED)
def record_progress(payload: ProgressCreate, db: Session = Depends(get_db)):
    classroom = _ensure_classroom_exists(db, payload.classroom_id)
    student = _ensure_student_exists(db, payload.student_id)
    _ensure_student_enrolled(db, classroom.id, student.id)

    # the entry always belongs to the classroom's school
    p = StudentProgress(
        student_id=student.id,
        classroom_id=classroom.id,
        school_id=classroom.school_id,
        assignment_name=payload.assignment_name,
        score=payload.score,
        max_score=payload.max_score,
        assignment_date=payload.assignment_date,
        notes=payload.notes,
    )
    db.add(p)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(p)

    record = ProgressRecord.model_validate(p)
    record.student_name = student.full_name
    record.classroom_name = classroom.name
    return record


@router.get("/classrooms/{classroom_id}/progress", response_model=list[ProgressRecord])
def list_classroom_progress(classroom_id: str, db: Session = Depends(get_db)):
    classroom = _ensure_classroom_exists(db, classroom_id)

    rows = (
        db.query(StudentProgress, Profile.full_name)
        .outerjoin(Profile, Profile.id == StudentProgress.student_id)
        .filter(StudentProgress.classroom_id == classroom_id)
        .order_by(StudentProgress.assignment_date.desc(), StudentProgress.created_at.desc())
        .all()
    )

    result: list[ProgressRecord] = []
    for progress, student_name in rows:
        record = ProgressRecord.model_validate(progress)
        record.student_name = student_name
        record.classroom_name = classroom.name
        result.append(record)
    return result
