"""Employer ratings of workers."""

import logging

from daywork.core.errors import Conflict, NotFound
from daywork.schemas import Rating, RatingCreate, User
from daywork.storage import Storage
from daywork.workflow.gate import require_owner, require_role
from daywork.workflow.workers import ensure_worker_profile

logger = logging.getLogger(__name__)


def submit_rating(storage: Storage, actor: User, data: RatingCreate) -> Rating:
    """Rate a worker for a job whose application reached ``completed``.

    The storage backend inserts the rating and recomputes the worker's
    average and count as a single atomic step.
    """
    require_role(actor, "employer", "Only employers can rate workers")

    job = storage.get_job(data.job_id)
    if job is None:
        raise NotFound("Job not found")
    worker = storage.get_user(data.worker_id)
    if worker is None or worker.role != "worker":
        raise NotFound("Worker not found")
    require_owner(actor, job.employer_id, "You can only rate workers for your own jobs")

    application = storage.get_application_for(data.job_id, data.worker_id)
    if application is None or application.status != "completed":
        raise Conflict("Cannot rate a worker for an incomplete job")

    ensure_worker_profile(storage, data.worker_id)
    rating = storage.create_rating(
        worker_id=data.worker_id,
        employer_id=actor.id,
        job_id=data.job_id,
        rating=data.rating,
        comment=data.comment,
    )
    profile = storage.get_worker_profile(data.worker_id)
    logger.info(
        "Worker %s rated %s by employer %s; average now %.2f over %d",
        data.worker_id, data.rating, actor.id, profile.average_rating, profile.total_ratings,
    )
    return rating
