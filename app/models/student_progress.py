import uuid

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class StudentProgress(Base):
    __tablename__ = "student_progress"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    student_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)

    assignment_name = Column(String(255), nullable=False)
    score = Column(Float, nullable=False)
    max_score = Column(Float, nullable=False)
    assignment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    student = relationship("Profile", back_populates="progress")
    classroom = relationship("Classroom", back_populates="progress")
