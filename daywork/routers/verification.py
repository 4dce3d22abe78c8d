
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from daywork.routers import deps
from daywork.schemas import DocumentType, User
from daywork.storage import Storage
from daywork.workflow import verification

router = APIRouter(
    prefix="/verification",
    tags=["verification"],
    dependencies=[Depends(deps.get_current_user)]
)


@router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_verification(
    document_type: DocumentType = Form(...),
    document_number: str = Form(...),
    date_of_birth: date = Form(...),
    address: str = Form(...),
    document: Optional[UploadFile] = File(default=None),
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    updated = verification.submit_document(
        storage,
        user,
        document_type=document_type,
        document_number=document_number,
        date_of_birth=date_of_birth,
        address=address,
        document=document,
    )
    return {"message": "Verification submitted successfully", "user": updated}


@router.get("/status")
async def verification_status(
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return verification.verification_state(storage, user)
