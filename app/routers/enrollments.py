from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.models.profile import Profile
from app.models.student_enrollment import StudentEnrollment
from app.routers.progress import _ensure_classroom_exists, _ensure_student_exists
from app.schemas.enrollment import EnrollmentCreate, EnrollmentOut

router = APIRouter(tags=["enrollments"])


@router.post(
    "/classrooms/{classroom_id}/enrollments",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
def enroll_student(classroom_id: str, payload: EnrollmentCreate, db: Session = Depends(get_db)):
    classroom = _ensure_classroom_exists(db, classroom_id)
    student = _ensure_student_exists(db, payload.student_id)

    enrollment = StudentEnrollment(student_id=student.id, classroom_id=classroom.id, school_id=classroom.school_id)
    db.add(enrollment)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Already enrolled")

    db.refresh(enrollment)

    out = EnrollmentOut.model_validate(enrollment)
    out.student_name = student.full_name
    return out


@router.get("/classrooms/{classroom_id}/enrollments", response_model=list[EnrollmentOut])
def list_enrollments(classroom_id: str, db: Session = Depends(get_db)):
    _ensure_classroom_exists(db, classroom_id)

    rows = (
        db.query(StudentEnrollment, Profile.full_name)
        .join(Profile, Profile.id == StudentEnrollment.student_id)
        .filter(StudentEnrollment.classroom_id == classroom_id)
        .order_by(Profile.full_name.asc())
        .all()
    )

    result: list[EnrollmentOut] = []
    for enrollment, student_name in rows:
        out = EnrollmentOut.model_validate(enrollment)
        out.student_name = student_name
        result.append(out)
    return result
