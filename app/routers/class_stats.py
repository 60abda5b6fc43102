import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.core.deps import get_archive_store, get_db
from app.core.errors import ClassStatsError, MissingIdentifierError
from app.db.archive import ArchiveStore
from app.models.class_statistics import ClassStatistics
from app.schemas.class_statistics import ClassStatisticsRead, ClassStatsRequest
from app.services.class_stats import compute_and_persist_statistics

logger = logging.getLogger(__name__)

router = APIRouter(tags=["class statistics"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _error(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


@router.options("/calculate-class-stats")
def calculate_class_stats_preflight():
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/calculate-class-stats")
def calculate_class_stats(
    payload: Optional[ClassStatsRequest] = None,
    db: Session = Depends(get_db),
    archive: ArchiveStore = Depends(get_archive_store),
):
    if payload is None or not payload.classroom_id or not payload.school_id:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            {"error": "classroom_id and school_id are required"},
        )

    try:
        result = compute_and_persist_statistics(db, archive, payload.classroom_id, payload.school_id)
    except MissingIdentifierError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, {"error": str(exc)})
    except ClassStatsError as exc:
        logger.error("Statistics run failed for classroom %s: %s", payload.classroom_id, exc)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": "Internal server error", "details": str(exc)},
        )
    except Exception as exc:
        logger.exception("Unexpected error calculating statistics for classroom %s", payload.classroom_id)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": "Internal server error", "details": str(exc) or "Unknown error"},
        )

    if not result.has_data:
        return JSONResponse(
            content={"message": "No progress data found for this classroom", "statistics": None},
            headers=CORS_HEADERS,
        )

    return JSONResponse(
        content={
            "success": True,
            "statistics": result.statistics.model_dump(mode="json"),
            "message": "Class statistics calculated successfully",
            "archive_status": result.archive.status,
        },
        headers=CORS_HEADERS,
    )


@router.get("/classrooms/{classroom_id}/statistics", response_model=list[ClassStatisticsRead])
def list_class_statistics(
    classroom_id: str,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    # newest first: the first row is the current summary by convention
    return (
        db.query(ClassStatistics)
        .filter(ClassStatistics.classroom_id == classroom_id)
        .order_by(ClassStatistics.calculation_date.desc(), ClassStatistics.created_at.desc())
        .limit(limit)
        .all()
    )
