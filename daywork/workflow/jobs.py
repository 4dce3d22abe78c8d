"""Job postings."""

import logging
from typing import List, Optional

from daywork.core.errors import NotFound
from daywork.schemas import DashboardJob, Job, JobCreate, JobUpdate, JobWithEmployer, User
from daywork.storage import Storage
from daywork.workflow.gate import require_owner, require_role

logger = logging.getLogger(__name__)


def create_job(storage: Storage, actor: User, data: JobCreate) -> Job:
    require_role(actor, "employer", "Only employers can post jobs")
    job = storage.create_job(employer_id=actor.id, **data.model_dump())
    logger.info("Employer %s posted job %s", actor.id, job.id)
    return job


def update_job(storage: Storage, actor: User, job_id: int, changes: JobUpdate) -> Job:
    require_role(actor, "employer", "Only employers can edit jobs")
    job = storage.get_job(job_id)
    if job is None:
        raise NotFound("Job not found")
    require_owner(actor, job.employer_id, "You can only update your own jobs")

    fields = changes.model_dump(exclude_unset=True)
    updated = storage.update_job(job_id, **fields)
    if "is_active" in fields and fields["is_active"] != job.is_active:
        logger.info("Job %s %s", job_id, "reactivated" if fields["is_active"] else "deactivated")
    return updated


def list_jobs(
    storage: Storage,
    category: Optional[str] = None,
    location: Optional[str] = None,
    is_active: Optional[bool] = True,
) -> List[JobWithEmployer]:
    return storage.get_jobs(category=category, location=location, is_active=is_active)


def job_detail(storage: Storage, job_id: int) -> dict:
    job = storage.get_job(job_id)
    if job is None:
        raise NotFound("Job not found")
    return {"job": job, "applications": storage.get_applications_by_job(job_id)}


def employer_dashboard(storage: Storage, actor: User) -> dict:
    require_role(actor, "employer", "Access denied")
    jobs = [
        DashboardJob(**job.model_dump(), applications=storage.get_applications_by_job(job.id))
        for job in storage.get_jobs_by_employer(actor.id)
    ]
    return {"jobs": jobs}
