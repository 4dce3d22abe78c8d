"""Identity-document verification and email confirmation codes.

Identity verification moves a user from ``not_submitted`` to ``pending`` when
a document is submitted; a reviewer later decides ``verified`` or
``rejected``. Email confirmation is independent: one six-digit code at a
time, valid for ``EMAIL_CODE_TTL_HOURS``.
"""

import logging
import secrets
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import UploadFile

from daywork.core.config import settings
from daywork.core.errors import Conflict, DependencyFailure, InvalidInput, NotFound
from daywork.schemas import User, VerificationDocument
from daywork.storage import Storage
from daywork.utils.dates import age_on, as_naive_utc, utcnow
from daywork.utils.uploads import discard_document_image, save_document_image

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
REVIEW_DECISIONS = ("verified", "rejected")


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


def issue_email_code(storage: Storage, user: User, now: Optional[datetime] = None) -> str:
    """Store a fresh code for the user, replacing any previous one."""
    if not user.email:
        raise InvalidInput("An email address is required before a code can be issued", field="email")
    code = generate_code()
    expires = (now or utcnow()) + timedelta(hours=settings.EMAIL_CODE_TTL_HOURS)
    storage.update_user_verification_code(user.id, code, expires)
    return code


async def send_email_code(storage: Storage, mailer, user: User) -> str:
    code = issue_email_code(storage, user)
    await mailer.send_verification_code(user.email, user.full_name, code, settings.EMAIL_CODE_TTL_HOURS)
    logger.info("Verification code sent to user %s", user.id)
    return code


async def resend_email_code(storage: Storage, mailer, actor: User) -> bool:
    """Returns False when the email was already confirmed and nothing was sent."""
    user = storage.get_user(actor.id)
    if user is None:
        raise NotFound("User not found")
    if user.email_verified:
        return False
    try:
        await send_email_code(storage, mailer, user)
    except InvalidInput:
        raise
    except Exception as exc:
        logger.exception("Resending verification email to user %s failed", user.id)
        raise DependencyFailure("Failed to send verification email") from exc
    return True


def check_email_code(storage: Storage, user_id: int, code: str, now: Optional[datetime] = None) -> User:
    user = storage.get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    if user.email_verified:
        return user

    if not user.verification_code or user.verification_code_expires is None:
        raise InvalidInput("No verification code has been issued", field="code")
    if as_naive_utc(now or utcnow()) > as_naive_utc(user.verification_code_expires):
        raise InvalidInput("Verification code has expired", field="code")
    if not secrets.compare_digest(code.encode(), user.verification_code.encode()):
        raise InvalidInput("Invalid verification code", field="code")

    logger.info("Email confirmed for user %s", user.id)
    return storage.update_user_email_verification(user.id, True)


def submit_document(
    storage: Storage,
    actor: User,
    *,
    document_type: str,
    document_number: str,
    date_of_birth: date,
    address: str,
    document: Optional[UploadFile],
    today: Optional[date] = None,
) -> User:
    if actor.verification_status == "verified":
        raise Conflict("Identity is already verified")
    if not document_number.strip():
        raise InvalidInput("Government ID is required", field="document_number")
    if not address.strip():
        raise InvalidInput("Address is required", field="address")

    age = age_on(date_of_birth, today or date.today())
    if age < settings.MIN_VERIFICATION_AGE:
        raise InvalidInput(
            f"You must be at least {settings.MIN_VERIFICATION_AGE} years old", field="date_of_birth"
        )
    if document is None or not document.filename:
        raise InvalidInput("ID document image is required", field="document")

    image_path = save_document_image(document, actor.id)

    try:
        doc = storage.create_verification_document(
            user_id=actor.id,
            document_type=document_type,
            document_number=document_number.strip(),
            document_image_url=image_path,
            date_of_birth=date_of_birth,
            age=age,
        )
    except Exception:
        discard_document_image(image_path)
        raise
    logger.info("User %s submitted %s document %s", actor.id, document_type, doc.id)
    return storage.get_user(actor.id)


def review_document(storage: Storage, document_id: int, status: str, notes: Optional[str] = None) -> VerificationDocument:
    if status not in REVIEW_DECISIONS:
        raise InvalidInput("Status must be verified or rejected", field="status")
    doc = storage.review_verification_document(document_id, status, notes)
    if doc is None:
        raise NotFound("Verification document not found")
    logger.info("Verification document %s reviewed: %s", document_id, status)
    return doc


def verification_state(storage: Storage, actor: User) -> dict:
    user = storage.get_user(actor.id)
    if user is None:
        raise NotFound("User not found")
    return {
        "verification_status": user.verification_status,
        "is_verified": user.is_verified,
        "email_verified": user.email_verified,
        "documents": storage.get_verification_documents(actor.id),
    }
