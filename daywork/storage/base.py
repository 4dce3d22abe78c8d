"""The storage contract shared by the in-memory and relational backends.

Every point lookup returns ``None`` when the row is absent. Lookups that
hydrate a relation (a job with its employer, an application with its
worker) also return ``None`` / skip the row when the referenced entity is
missing, so callers never see a partially populated record.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from daywork.schemas import (
    Application,
    ApplicationWithJob,
    ApplicationWithWorker,
    Conversation,
    ConversationSummary,
    Job,
    JobWithEmployer,
    Message,
    Rating,
    User,
    VerificationDocument,
    WorkerListing,
    WorkerProfile,
    WorkerWithUser,
)

TOP_RATED_DEFAULT_LIMIT = 4
SEARCH_LIMIT = 10

# Editable columns per entity; anything else passed to an update is ignored
USER_EDITABLE = ("full_name", "phone", "email", "location")
PROFILE_EDITABLE = ("primary_skill", "description", "is_available")
JOB_EDITABLE = ("title", "description", "location", "category", "wage", "duration", "is_active")


class DuplicateApplication(Exception):
    """A (job, worker) application already exists."""


class DuplicateUsername(Exception):
    """The username is already taken."""


def rating_average(total: float, count: int) -> float:
    """Stored average: arithmetic mean rounded to two decimals (0.0 when empty)."""
    if not count:
        return 0.0
    return round(total / count, 2)


def pick(fields: dict, allowed) -> dict:
    return {k: v for k, v in fields.items() if k in allowed}


class Storage(ABC):

    def create_schema(self):
        """Create backing tables if the backend needs them."""

    # --- Users ---

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def get_users(self, role: Optional[str] = None) -> List[User]: ...

    @abstractmethod
    def create_user(
        self,
        *,
        username: str,
        hashed_password: str,
        full_name: str,
        phone: str,
        email: Optional[str],
        role: str,
        location: str,
    ) -> User:
        """Raises DuplicateUsername if the username exists."""

    @abstractmethod
    def update_user(self, user_id: int, **fields) -> Optional[User]: ...

    @abstractmethod
    def update_user_verification(self, user_id: int, status: str) -> Optional[User]:
        """Set verification_status and keep is_verified equal to (status == "verified")."""

    @abstractmethod
    def update_user_verification_code(self, user_id: int, code: str, expires: datetime) -> Optional[User]:
        """Store a new email code, replacing any previous one."""

    @abstractmethod
    def update_user_email_verification(self, user_id: int, verified: bool) -> Optional[User]:
        """Set email_verified and clear any outstanding code."""

    @abstractmethod
    def search_users(self, query: str, exclude_user_id: int, role: Optional[str] = None,
                     limit: int = SEARCH_LIMIT) -> List[User]: ...

    @abstractmethod
    def delete_all_users(self) -> None:
        """Wipe every user and everything that references one."""

    # --- Worker profiles ---

    @abstractmethod
    def get_worker_profile(self, user_id: int) -> Optional[WorkerProfile]: ...

    @abstractmethod
    def create_worker_profile(self, *, user_id: int, primary_skill: str, description: Optional[str] = None,
                              is_available: bool = True) -> WorkerProfile: ...

    @abstractmethod
    def update_worker_profile(self, user_id: int, **fields) -> Optional[WorkerProfile]: ...

    @abstractmethod
    def get_workers_by_skill(self, skill: str) -> List[WorkerWithUser]:
        """Case-insensitive substring match on primary_skill."""

    @abstractmethod
    def get_top_rated_workers(self, limit: int = TOP_RATED_DEFAULT_LIMIT) -> List[WorkerWithUser]:
        """Highest average first, ties broken by rating count then profile id."""

    def list_workers(self) -> List[WorkerListing]:
        return [
            WorkerListing(user=user, profile=self.get_worker_profile(user.id))
            for user in self.get_users("worker")
        ]

    # --- Jobs ---

    @abstractmethod
    def get_job(self, job_id: int) -> Optional[JobWithEmployer]: ...

    @abstractmethod
    def get_jobs(self, category: Optional[str] = None, location: Optional[str] = None,
                 is_active: Optional[bool] = None) -> List[JobWithEmployer]:
        """Newest first."""

    @abstractmethod
    def create_job(self, *, employer_id: int, title: str, description: str, location: str,
                   category: str, wage: str, duration: Optional[str] = None) -> Job: ...

    @abstractmethod
    def update_job(self, job_id: int, **fields) -> Optional[Job]: ...

    @abstractmethod
    def get_jobs_by_employer(self, employer_id: int) -> List[Job]:
        """Newest first."""

    # --- Applications ---

    @abstractmethod
    def get_application(self, application_id: int) -> Optional[Application]: ...

    @abstractmethod
    def get_application_for(self, job_id: int, worker_id: int) -> Optional[Application]: ...

    @abstractmethod
    def get_applications_by_worker(self, worker_id: int) -> List[ApplicationWithJob]:
        """Newest first."""

    @abstractmethod
    def get_applications_by_job(self, job_id: int) -> List[ApplicationWithWorker]:
        """Oldest first."""

    @abstractmethod
    def create_application(self, *, job_id: int, worker_id: int) -> Application:
        """Raises DuplicateApplication if the pair already applied."""

    @abstractmethod
    def update_application_status(self, application_id: int, status: str,
                                  expected: Optional[str] = None) -> Optional[Application]:
        """Write the new status.

        With ``expected`` set, the write only happens if the stored status
        still equals it; otherwise the current row is returned unchanged.
        """

    # --- Ratings ---

    @abstractmethod
    def get_ratings_by_worker(self, worker_id: int) -> List[Rating]:
        """Newest first."""

    @abstractmethod
    def create_rating(self, *, worker_id: int, employer_id: int, job_id: int, rating: int,
                      comment: Optional[str] = None) -> Rating:
        """Insert the rating and recompute the worker aggregate atomically."""

    # --- Verification documents ---

    @abstractmethod
    def get_verification_document(self, document_id: int) -> Optional[VerificationDocument]: ...

    @abstractmethod
    def get_verification_documents(self, user_id: int) -> List[VerificationDocument]: ...

    @abstractmethod
    def create_verification_document(self, *, user_id: int, document_type: str, document_number: str,
                                     document_image_url: Optional[str] = None, date_of_birth: Optional[date] = None,
                                     age: Optional[int] = None) -> VerificationDocument:
        """Insert the document and move the owner to "pending" in one step.

        When given, the owner's date of birth and age are stored in the same step.
        """

    @abstractmethod
    def review_verification_document(self, document_id: int, status: str,
                                     notes: Optional[str] = None) -> Optional[VerificationDocument]:
        """Record a reviewer decision on the document and its owner."""

    # --- Conversations and messages ---

    @abstractmethod
    def get_conversation(self, conversation_id: int) -> Optional[Conversation]: ...

    @abstractmethod
    def get_conversation_by_participants(self, user_a: int, user_b: int) -> Optional[Conversation]:
        """Order of the two ids does not matter."""

    @abstractmethod
    def get_conversations_by_user(self, user_id: int) -> List[ConversationSummary]:
        """Most recent activity first; conversations with a missing participant are skipped."""

    @abstractmethod
    def create_conversation(self, *, participant1_id: int, participant2_id: int,
                            job_id: Optional[int] = None) -> Conversation:
        """Return the pair's existing conversation instead of inserting a second one."""

    @abstractmethod
    def get_message(self, message_id: int) -> Optional[Message]: ...

    @abstractmethod
    def get_messages_by_conversation(self, conversation_id: int) -> List[Message]:
        """Oldest first."""

    @abstractmethod
    def create_message(self, *, conversation_id: int, sender_id: int, content: str,
                       metadata: Optional[dict] = None) -> Message:
        """Insert the message and bump the conversation's last_message_at together."""

    @abstractmethod
    def mark_messages_as_read(self, conversation_id: int, reader_id: int,
                              message_id: Optional[int] = None) -> int:
        """Stamp read_at on unread messages not sent by ``reader_id``.

        Limited to one message when ``message_id`` is given. Returns the
        number of messages changed.
        """
