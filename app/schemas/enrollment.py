from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class EnrollmentCreate(BaseModel):
    student_id: str


class EnrollmentOut(BaseModel):
    id: str
    student_id: str
    classroom_id: str
    school_id: str
    enrolled_at: datetime
    student_name: Optional[str] = None

    class Config:
        from_attributes = True
