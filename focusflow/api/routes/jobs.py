import logging

from fastapi import APIRouter, Depends, status

from focusflow.api.models import JobCreateRequest, JobCreateResponse, JobStatsResponse, JobStatusResponse
from focusflow.jobs.models import JobStatus
from focusflow.services.jobs import JobQueueService, get_job_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_job(  # noqa: B008
  request: JobCreateRequest,
  service: JobQueueService = Depends(get_job_service),  # noqa: B008
) -> JobCreateResponse:
  """Submit a generation job; poll its status with the returned id."""
  job_id = await service.create_job(request.type, request.params, timeout_seconds=request.timeout_seconds)
  return JobCreateResponse(job_id=job_id, status=JobStatus.PENDING)


# Declared before /{job_id} so "stats" is not captured as a job id.
@router.get("/stats", response_model=JobStatsResponse)
async def get_job_stats(  # noqa: B008
  service: JobQueueService = Depends(get_job_service),  # noqa: B008
) -> JobStatsResponse:
  """Return aggregate queue counters."""
  return JobStatsResponse.from_stats(await service.get_stats())


@router.get("/{job_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
async def get_job_status(  # noqa: B008
  job_id: str,
  service: JobQueueService = Depends(get_job_service),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the status, progress and result of a job."""
  return JobStatusResponse.from_view(await service.get_job_status(job_id))


@router.delete("/{job_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
async def cancel_job(  # noqa: B008
  job_id: str,
  service: JobQueueService = Depends(get_job_service),  # noqa: B008
) -> JobStatusResponse:
  """Cancel a job that has not started processing yet."""
  view = await service.cancel_job(job_id)
  logger.info("Cancel requested job_id=%s", job_id)
  return JobStatusResponse.from_view(view)
