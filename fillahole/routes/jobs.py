"""Background job status."""

from fastapi import APIRouter, Depends, HTTPException

from fillahole.core.context import AppContext, get_context
from fillahole.services.jobs import Job


router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get("/{job_id}", response_model=Job)
def get_job(job_id: str, ctx: AppContext = Depends(get_context)):
    job = ctx.jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job
