from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ProgressCreate(BaseModel):
    student_id: str
    classroom_id: str
    assignment_name: str = Field(min_length=1, max_length=255)
    score: float = Field(ge=0)
    max_score: float = Field(ge=1)
    assignment_date: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def score_within_max(self):
        if self.score > self.max_score:
            raise ValueError("score cannot exceed max_score")
        return self


class ProgressRecord(BaseModel):
    """One graded submission as read by the aggregator, expanded with display names."""

    id: str
    student_id: str
    classroom_id: str
    school_id: str
    assignment_name: str
    score: float
    max_score: float
    assignment_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # join-expanded
    student_name: Optional[str] = None
    classroom_name: Optional[str] = None

    class Config:
        from_attributes = True
