"""Worker discovery, profiles and the worker dashboard."""

from typing import List, Optional, Union

from daywork.core.errors import NotFound
from daywork.schemas import User, WorkerListing, WorkerProfile, WorkerProfileUpdate, WorkerWithUser
from daywork.storage import Storage
from daywork.storage.base import TOP_RATED_DEFAULT_LIMIT
from daywork.workflow.gate import require_role

DEFAULT_SKILL = "general"


def ensure_worker_profile(storage: Storage, worker_id: int) -> WorkerProfile:
    profile = storage.get_worker_profile(worker_id)
    if profile is None:
        profile = storage.create_worker_profile(user_id=worker_id, primary_skill=DEFAULT_SKILL, description="")
    return profile


def list_workers(
    storage: Storage,
    skill: Optional[str] = None,
    top_rated: bool = False,
    limit: Optional[int] = None,
) -> List[Union[WorkerWithUser, WorkerListing]]:
    if skill:
        return storage.get_workers_by_skill(skill)
    if top_rated:
        return storage.get_top_rated_workers(limit or TOP_RATED_DEFAULT_LIMIT)
    return storage.list_workers()


def worker_detail(storage: Storage, worker_id: int) -> dict:
    user = storage.get_user(worker_id)
    if user is None or user.role != "worker":
        raise NotFound("Worker not found")
    return {
        "user": user,
        "profile": storage.get_worker_profile(worker_id),
        "ratings": storage.get_ratings_by_worker(worker_id),
    }


def update_profile(storage: Storage, actor: User, changes: WorkerProfileUpdate) -> WorkerProfile:
    require_role(actor, "worker", "Only workers have a worker profile")
    ensure_worker_profile(storage, actor.id)
    return storage.update_worker_profile(actor.id, **changes.model_dump(exclude_unset=True))


def worker_dashboard(storage: Storage, actor: User) -> dict:
    require_role(actor, "worker", "Access denied")
    return {
        "profile": ensure_worker_profile(storage, actor.id),
        "applications": storage.get_applications_by_worker(actor.id),
        "ratings": storage.get_ratings_by_worker(actor.id),
    }
