"""Per-classroom performance statistics.

A run fetches every progress record of a classroom, aggregates percentages
overall, per assignment and per student, then persists in two phases:

1. a summary row in ``class_statistics`` (fatal on failure), then
2. a full snapshot in the document archive (best-effort, reported only).
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import SCORE_DECIMALS
from app.core.errors import DegenerateInputError, MissingIdentifierError, SummaryWriteError, UpstreamReadError
from app.db.archive import ArchiveResult, ArchiveStore
from app.models.class_statistics import ClassStatistics
from app.models.classroom import Classroom
from app.models.profile import Profile
from app.models.student_progress import StudentProgress
from app.schemas.class_statistics import (
    AssignmentStatistics,
    ClassStatisticsPayload,
    StatisticsMetadata,
    StudentStatistics,
)
from app.schemas.progress import ProgressRecord

logger = logging.getLogger(__name__)

UNKNOWN_STUDENT = "Unknown"


@dataclass
class StatisticsResult:
    statistics: Optional[ClassStatisticsPayload] = None
    summary_id: Optional[str] = None
    archive: Optional[ArchiveResult] = None

    @property
    def has_data(self) -> bool:
        return self.statistics is not None


def round_score(value: float) -> float:
    # half away from zero, unlike round()'s banker's rounding
    quantum = Decimal(1).scaleb(-SCORE_DECIMALS)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(record: ProgressRecord) -> float:
    if not (math.isfinite(record.score) and math.isfinite(record.max_score)):
        raise DegenerateInputError(record.id, f"progress record {record.id} has a non-finite score")
    if record.max_score <= 0:
        raise DegenerateInputError(
            record.id, f"progress record {record.id} has max_score {record.max_score}; percentage is undefined"
        )
    return record.score / record.max_score * 100


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _assignment_stats(scored: Iterable[tuple[ProgressRecord, float]]) -> list[AssignmentStatistics]:
    groups: dict[str, list[float]] = {}
    for record, pct in scored:
        # exact-name grouping, no trimming or case folding
        groups.setdefault(record.assignment_name, []).append(pct)

    return [
        AssignmentStatistics(
            assignment_name=name,
            average_score=round_score(_mean(scores)),
            total_submissions=len(scores),
            highest_score=max(scores),
            lowest_score=min(scores),
        )
        for name, scores in groups.items()
    ]


def _student_stats(scored: Iterable[tuple[ProgressRecord, float]]) -> list[StudentStatistics]:
    names: dict[str, Optional[str]] = {}
    groups: dict[str, list[float]] = {}
    for record, pct in scored:
        if names.get(record.student_id) is None:
            names[record.student_id] = record.student_name
        groups.setdefault(record.student_id, []).append(pct)

    return [
        StudentStatistics(
            student_id=student_id,
            student_name=names[student_id] or UNKNOWN_STUDENT,
            average_score=round_score(_mean(scores)),
            total_assignments=len(scores),
            highest_score=max(scores),
            lowest_score=min(scores),
        )
        for student_id, scores in groups.items()
    ]


def compute_statistics(
    records: Sequence[ProgressRecord],
    classroom_id: str,
    school_id: str,
    now: Optional[datetime] = None,
) -> Optional[ClassStatisticsPayload]:
    """Aggregate progress records into a statistics payload.

    Records without a usable percentage (``max_score <= 0``) are left out and
    counted in ``metadata.excluded_records``. Returns None when nothing is left
    to aggregate.
    """
    scored: list[tuple[ProgressRecord, float]] = []
    excluded = 0
    for record in records:
        try:
            scored.append((record, percentage(record)))
        except DegenerateInputError as exc:
            excluded += 1
            logger.warning("Excluding record from classroom %s statistics: %s", classroom_id, exc)

    if not scored:
        return None

    now = now or datetime.now(timezone.utc)
    percentages = [pct for _, pct in scored]

    return ClassStatisticsPayload(
        classroom_id=classroom_id,
        school_id=school_id,
        average_score=round_score(_mean(percentages)),
        total_assignments=len(scored),
        total_students=len({record.student_id for record, _ in scored}),
        calculation_date=now,
        assignment_statistics=_assignment_stats(scored),
        student_statistics=_student_stats(scored),
        metadata=StatisticsMetadata(
            calculated_at=now,
            total_data_points=len(records),
            excluded_records=excluded,
        ),
    )


def fetch_progress_records(db: Session, classroom_id: str) -> list[ProgressRecord]:
    try:
        rows = (
            db.query(
                StudentProgress,
                Profile.full_name.label("student_name"),
                Classroom.name.label("classroom_name"),
            )
            .outerjoin(Profile, Profile.id == StudentProgress.student_id)
            .outerjoin(Classroom, Classroom.id == StudentProgress.classroom_id)
            .filter(StudentProgress.classroom_id == classroom_id)
            .order_by(StudentProgress.assignment_date.asc(), StudentProgress.created_at.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise UpstreamReadError(f"Failed to fetch progress data: {exc}") from exc

    records: list[ProgressRecord] = []
    for progress, student_name, classroom_name in rows:
        record = ProgressRecord.model_validate(progress)
        record.student_name = student_name
        record.classroom_name = classroom_name
        records.append(record)
    return records


def persist_summary(db: Session, statistics: ClassStatisticsPayload) -> str:
    row = ClassStatistics(
        classroom_id=statistics.classroom_id,
        school_id=statistics.school_id,
        average_score=statistics.average_score,
        total_assignments=statistics.total_assignments,
        total_students=statistics.total_students,
        calculation_date=statistics.calculation_date,
    )
    db.add(row)

    # id is a client-side default, set by flush
    try:
        db.flush()
        summary_id = row.id
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise SummaryWriteError(f"Failed to save class statistics: {exc}") from exc

    return summary_id


def compute_and_persist_statistics(
    db: Session,
    archive: ArchiveStore,
    classroom_id: str,
    school_id: str,
) -> StatisticsResult:
    if not classroom_id or not school_id:
        raise MissingIdentifierError("classroom_id and school_id are required")

    records = fetch_progress_records(db, classroom_id)
    statistics = compute_statistics(records, classroom_id, school_id)
    if statistics is None:
        logger.info("No progress data for classroom %s (%d records fetched)", classroom_id, len(records))
        return StatisticsResult()

    summary_id = persist_summary(db, statistics)
    logger.info(
        "Classroom %s: average %.2f over %d records, %d students (summary %s)",
        classroom_id,
        statistics.average_score,
        statistics.total_assignments,
        statistics.total_students,
        summary_id,
    )

    archived = archive.archive(statistics.model_dump())
    if not archived.ok:
        logger.error("Snapshot for classroom %s not archived: %s", classroom_id, archived.error)

    return StatisticsResult(statistics=statistics, summary_id=summary_id, archive=archived)
