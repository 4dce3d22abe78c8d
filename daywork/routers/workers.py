
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from daywork.routers import deps
from daywork.schemas import RatingCreate, User, WorkerProfileUpdate
from daywork.storage import Storage
from daywork.workflow import applications, ratings, workers

router = APIRouter(tags=["workers"])


@router.get("/workers")
async def list_workers(
    skill: Optional[str] = None,
    top_rated: bool = Query(False, alias="topRated"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    storage: Storage = Depends(deps.get_storage),
):
    return workers.list_workers(storage, skill=skill, top_rated=top_rated, limit=limit)


# Declared before /workers/{id} so the literal paths win
@router.get("/workers/dashboard")
async def worker_dashboard(
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return workers.worker_dashboard(storage, user)


@router.patch("/workers/profile")
async def update_worker_profile(
    changes: WorkerProfileUpdate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return workers.update_profile(storage, user, changes)


@router.get("/workers/{id}")
async def get_worker(id: int, storage: Storage = Depends(deps.get_storage)):
    return workers.worker_detail(storage, id)


@router.get("/workers/{id}/applications")
async def worker_applications(
    id: int,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return applications.applications_for_worker(storage, user, id)


@router.post("/ratings", status_code=status.HTTP_201_CREATED)
async def create_rating(
    data: RatingCreate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return ratings.submit_rating(storage, user, data)
