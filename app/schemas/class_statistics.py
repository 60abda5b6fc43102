from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClassStatsRequest(BaseModel):
    # optional here so a missing field gets the explicit 400 message, not a schema error
    classroom_id: Optional[str] = None
    school_id: Optional[str] = None


class AssignmentStatistics(BaseModel):
    assignment_name: str
    average_score: float
    total_submissions: int
    highest_score: float
    lowest_score: float


class StudentStatistics(BaseModel):
    student_id: str
    student_name: str
    average_score: float
    total_assignments: int
    highest_score: float
    lowest_score: float


class StatisticsMetadata(BaseModel):
    calculated_at: datetime
    total_data_points: int
    excluded_records: int = 0


class ClassStatisticsPayload(BaseModel):
    classroom_id: str
    school_id: str
    average_score: float
    total_assignments: int
    total_students: int
    calculation_date: datetime
    assignment_statistics: list[AssignmentStatistics] = Field(default_factory=list)
    student_statistics: list[StudentStatistics] = Field(default_factory=list)
    metadata: StatisticsMetadata


class ClassStatisticsRead(BaseModel):
    id: str
    classroom_id: str
    school_id: str
    average_score: float
    total_assignments: int
    total_students: int
    calculation_date: datetime
    created_at: datetime

    class Config:
        from_attributes = True
