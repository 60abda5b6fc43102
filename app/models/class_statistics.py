import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func

from app.db.base_class import Base


# Append-only: every aggregation run inserts a row. The newest calculation_date
# is the current one; nothing enforces one row per classroom.
class ClassStatistics(Base):
    __tablename__ = "class_statistics"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)

    average_score = Column(Float, nullable=False)
    total_assignments = Column(Integer, nullable=False)
    total_students = Column(Integer, nullable=False)
    calculation_date = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
