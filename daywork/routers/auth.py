
from datetime import timedelta

from fastapi import APIRouter, Depends, Response, status

from daywork.core.config import settings
from daywork.core.security import create_access_token
from daywork.routers import deps
from daywork.schemas import LoginIn, RegisterIn, User, UserUpdate, VerifyEmailIn
from daywork.storage import Storage
from daywork.workflow import accounts, verification

router = APIRouter(tags=["auth"])


def _start_session(response: Response, user: User):
    access_token = create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=f"Bearer {access_token}",
        httponly=True,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterIn,
    response: Response,
    storage: Storage = Depends(deps.get_storage),
    mailer=Depends(deps.get_mailer),
):
    user = await accounts.register(storage, mailer, data)
    _start_session(response, user)
    return {
        "user": user,
        "message": "Registration successful. Please check your email for a verification code.",
    }


@router.post("/login")
async def login(data: LoginIn, response: Response, storage: Storage = Depends(deps.get_storage)):
    user = accounts.authenticate(storage, data.username, data.password)
    _start_session(response, user)
    return user


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/user")
async def current_user(user: User = Depends(deps.get_current_user)):
    return user


@router.patch("/user")
async def update_current_user(
    changes: UserUpdate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return accounts.update_account(storage, user, changes)


@router.post("/verify-email")
async def verify_email(
    data: VerifyEmailIn,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    verification.check_email_code(storage, user.id, data.code)
    return {"success": True, "message": "Email verified successfully"}


@router.post("/resend-verification")
async def resend_verification(
    storage: Storage = Depends(deps.get_storage),
    mailer=Depends(deps.get_mailer),
    user: User = Depends(deps.get_current_user),
):
    sent = await verification.resend_email_code(storage, mailer, user)
    if not sent:
        return {"success": True, "message": "Email already verified"}
    return {"success": True, "message": "Verification email sent successfully"}
