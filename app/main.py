import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.deps import get_archive_store
from app.core.logging_middleware import LoggingMiddleware
from app.db.init_db import init_db
from app.routers.class_stats import router as class_stats_router
from app.routers.enrollments import router as enrollments_router
from app.routers.progress import router as progress_router

logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(title="Classroom Statistics")

# Middleware
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# malformed bodies are client errors, reported as 400 like missing fields
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
def on_startup():
    init_db()


@app.on_event("shutdown")
def on_shutdown():
    get_archive_store().close()


app.include_router(class_stats_router)
app.include_router(progress_router)
app.include_router(enrollments_router)
