
from fastapi import APIRouter, Depends

from daywork.routers import deps
from daywork.schemas import VerificationReview
from daywork.storage import Storage
from daywork.workflow import admin, verification

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(deps.require_admin)]
)


@router.post("/delete-all-users")
async def delete_all_users(storage: Storage = Depends(deps.get_storage)):
    admin.delete_all_users(storage)
    return {"message": "All user data deleted successfully"}


@router.post("/verification/{document_id}/review")
async def review_verification(
    document_id: int,
    data: VerificationReview,
    storage: Storage = Depends(deps.get_storage),
):
    return verification.review_document(storage, document_id, data.status, data.notes)
