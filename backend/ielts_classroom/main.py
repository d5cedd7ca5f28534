import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import (
	AIServiceError,
	ClassroomError,
	ConflictError,
	DraftValidationError,
	NotFoundError,
	PersistenceError,
)
from .logging_config import configure_logging
from .routers import analytics, assignments, classes, folders, health, submissions
from .settings import settings
from .store import init_store

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
	(DraftValidationError, 400),
	(NotFoundError, 404),
	(ConflictError, 409),
	(AIServiceError, 502),
	(PersistenceError, 503),
)


def _status_for(exc: ClassroomError) -> int:
	for error_type, status in _STATUS_BY_ERROR:
		if isinstance(exc, error_type):
			return status
	return 500


def create_app() -> FastAPI:
	app = FastAPI(title="IELTS Classroom API")
	app.add_middleware(
		CORSMiddleware,
		allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:[0-9]+)?",
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(health.router)
	app.include_router(classes.router)
	app.include_router(folders.router)
	app.include_router(assignments.router)
	app.include_router(submissions.router)
	app.include_router(analytics.router)

	@app.exception_handler(ClassroomError)
	async def classroom_error_handler(request: Request, exc: ClassroomError):
		status = _status_for(exc)
		if status >= 500:
			logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
		else:
			logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
		return JSONResponse(status_code=status, content={"detail": exc.message})

	@app.on_event("startup")
	async def startup_event():
		configure_logging(settings.log_level)
		# Create the documents table if needed
		init_store()

	return app


app = create_app()
