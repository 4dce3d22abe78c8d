
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from daywork.routers import deps
from daywork.schemas import ApplicationStatusUpdate, JobCreate, JobUpdate, User
from daywork.storage import Storage
from daywork.workflow import applications, jobs

router = APIRouter(tags=["jobs"])


@router.get("/jobs")
async def list_jobs(
    category: Optional[str] = None,
    location: Optional[str] = None,
    is_active: bool = Query(True, alias="isActive"),
    storage: Storage = Depends(deps.get_storage),
):
    return jobs.list_jobs(storage, category=category, location=location, is_active=is_active)


@router.get("/jobs/{id}")
async def get_job(id: int, storage: Storage = Depends(deps.get_storage)):
    return jobs.job_detail(storage, id)


@router.post("/jobs", status_code=status.HTTP_201_CREATED)
async def create_job(
    data: JobCreate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return jobs.create_job(storage, user, data)


@router.patch("/jobs/{id}")
async def update_job(
    id: int,
    changes: JobUpdate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return jobs.update_job(storage, user, id, changes)


@router.post("/jobs/{id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    id: int,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return applications.apply(storage, user, id)


@router.patch("/applications/{id}")
async def update_application(
    id: int,
    data: ApplicationStatusUpdate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return applications.set_status(storage, user, id, data.status)


@router.get("/employers/dashboard")
async def employer_dashboard(
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return jobs.employer_dashboard(storage, user)
