"""Job applications and their status lifecycle.

    pending  -> accepted | rejected | completed
    accepted -> completed | rejected

``rejected`` and ``completed`` are terminal. Only the employer that owns the
job may move an application.
"""

import logging
from typing import List

from daywork.core.errors import Conflict, InvalidInput, NotFound, PermissionDenied
from daywork.schemas import Application, ApplicationWithJob, User
from daywork.storage import DuplicateApplication, Storage
from daywork.workflow.gate import require_owner, require_role

logger = logging.getLogger(__name__)

STATUSES = ("pending", "accepted", "rejected", "completed")

TRANSITIONS = {
    "pending": frozenset({"accepted", "rejected", "completed"}),
    "accepted": frozenset({"completed", "rejected"}),
    "rejected": frozenset(),
    "completed": frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, ())


def apply(storage: Storage, actor: User, job_id: int) -> Application:
    require_role(actor, "worker", "Only workers can apply for jobs")
    job = storage.get_job(job_id)
    if job is None:
        raise NotFound("Job not found")
    if not job.is_active:
        raise Conflict("This job is no longer active")
    if storage.get_application_for(job_id, actor.id) is not None:
        raise Conflict("You have already applied to this job")

    try:
        application = storage.create_application(job_id=job_id, worker_id=actor.id)
    except DuplicateApplication:
        raise Conflict("You have already applied to this job")
    logger.info("Worker %s applied to job %s", actor.id, job_id)
    return application


def set_status(storage: Storage, actor: User, application_id: int, status: str) -> Application:
    require_role(actor, "employer", "Only employers can update applications")
    if status not in STATUSES:
        raise InvalidInput("Invalid status", field="status")

    application = storage.get_application(application_id)
    if application is None:
        raise NotFound("Application not found")
    job = storage.get_job(application.job_id)
    if job is None:
        raise NotFound("Job not found")
    require_owner(actor, job.employer_id, "You can only update applications for your own jobs")

    current = application.status
    if not can_transition(current, status):
        raise Conflict(f"Cannot change application status from {current} to {status}")

    updated = storage.update_application_status(application_id, status, expected=current)
    if updated is None or updated.status != status:
        raise Conflict("Application was modified concurrently, reload and retry")
    logger.info("Application %s: %s -> %s", application_id, current, status)
    return updated


def applications_for_worker(storage: Storage, actor: User, worker_id: int) -> List[ApplicationWithJob]:
    if actor.id != worker_id and actor.role != "employer":
        raise PermissionDenied("You can only view your own applications")
    return storage.get_applications_by_worker(worker_id)
