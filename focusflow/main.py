from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from focusflow import __version__
from focusflow.api.routes import jobs
from focusflow.config import get_settings
from focusflow.core.errors import InvalidJobInputError, JobConflictError, JobNotFoundError
from focusflow.core.exceptions import global_exception_handler, http_exception_handler, invalid_job_input_handler, job_conflict_handler, job_not_found_handler, request_validation_exception_handler
from focusflow.core.lifespan import lifespan
from focusflow.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="FocusFlow Jobs", version=__version__, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(InvalidJobInputError, invalid_job_input_handler)
app.add_exception_handler(JobNotFoundError, job_not_found_handler)
app.add_exception_handler(JobConflictError, job_conflict_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok"}


app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
