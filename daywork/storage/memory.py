"""Dictionary-backed storage for tests and single-process demos."""

import itertools
import threading
from datetime import datetime
from typing import Dict, List, Optional

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
    WorkerProfile,
    WorkerWithUser,
)
from daywork.storage.base import (
    JOB_EDITABLE,
    PROFILE_EDITABLE,
    SEARCH_LIMIT,
    TOP_RATED_DEFAULT_LIMIT,
    USER_EDITABLE,
    DuplicateApplication,
    DuplicateUsername,
    Storage,
    pick,
    rating_average,
)
from daywork.utils.dates import utcnow


class IdCounter:
    """Auto-increment sequence owned by one table."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next(self) -> int:
        return next(self._counter)


class Table:
    def __init__(self):
        self.rows: Dict[int, object] = {}
        self.ids = IdCounter()

    def insert(self, model_cls, **values):
        row = model_cls(id=self.ids.next(), **values)
        self.rows[row.id] = row
        return row

    def values(self):
        return list(self.rows.values())


def _copy(row):
    return row.model_copy(deep=True) if row is not None else None


class MemoryStorage(Storage):

    def __init__(self):
        self._lock = threading.RLock()
        self._reset()

    def _reset(self):
        self.users = Table()
        self.profiles = Table()
        self.jobs = Table()
        self.applications = Table()
        self.ratings = Table()
        self.documents = Table()
        self.conversations = Table()
        self.messages = Table()

    def _update(self, table: Table, row_id: int, fields: dict):
        row = table.rows.get(row_id)
        if row is None:
            return None
        updated = row.model_copy(update=fields)
        table.rows[row_id] = updated
        return _copy(updated)

    # --- Users ---

    def get_user(self, user_id: int) -> Optional[User]:
        return _copy(self.users.rows.get(user_id))

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return _copy(user)
        return None

    def get_users(self, role: Optional[str] = None) -> List[User]:
        return [_copy(u) for u in self.users.values() if role is None or u.role == role]

    def create_user(self, *, username, hashed_password, full_name, phone, email, role, location) -> User:
        with self._lock:
            if any(u.username == username for u in self.users.values()):
                raise DuplicateUsername(username)
            user = self.users.insert(
                User,
                username=username,
                hashed_password=hashed_password,
                full_name=full_name,
                phone=phone,
                email=email,
                role=role,
                location=location,
                created_at=utcnow(),
            )
            return _copy(user)

    def update_user(self, user_id: int, **fields) -> Optional[User]:
        with self._lock:
            return self._update(self.users, user_id, pick(fields, USER_EDITABLE))

    def update_user_verification(self, user_id: int, status: str) -> Optional[User]:
        with self._lock:
            return self._update(
                self.users, user_id, {"verification_status": status, "is_verified": status == "verified"}
            )

    def update_user_verification_code(self, user_id: int, code: str, expires: datetime) -> Optional[User]:
        with self._lock:
            return self._update(
                self.users, user_id, {"verification_code": code, "verification_code_expires": expires}
            )

    def update_user_email_verification(self, user_id: int, verified: bool) -> Optional[User]:
        with self._lock:
            return self._update(
                self.users,
                user_id,
                {"email_verified": verified, "verification_code": None, "verification_code_expires": None},
            )

    def search_users(self, query: str, exclude_user_id: int, role: Optional[str] = None,
                     limit: int = SEARCH_LIMIT) -> List[User]:
        needle = query.lower()
        found = [
            u for u in sorted(self.users.values(), key=lambda u: u.id)
            if u.id != exclude_user_id
            and (role is None or u.role == role)
            and (needle in u.username.lower() or needle in u.full_name.lower())
        ]
        return [_copy(u) for u in found[:limit]]

    def delete_all_users(self) -> None:
        with self._lock:
            self._reset()

    # --- Worker profiles ---

    def _profile_row(self, user_id: int) -> Optional[WorkerProfile]:
        for profile in self.profiles.values():
            if profile.user_id == user_id:
                return profile
        return None

    def get_worker_profile(self, user_id: int) -> Optional[WorkerProfile]:
        return _copy(self._profile_row(user_id))

    def create_worker_profile(self, *, user_id, primary_skill, description=None, is_available=True) -> WorkerProfile:
        with self._lock:
            existing = self._profile_row(user_id)
            if existing is not None:
                return _copy(existing)
            profile = self.profiles.insert(
                WorkerProfile,
                user_id=user_id,
                primary_skill=primary_skill,
                description=description,
                is_available=is_available,
            )
            return _copy(profile)

    def update_worker_profile(self, user_id: int, **fields) -> Optional[WorkerProfile]:
        with self._lock:
            profile = self._profile_row(user_id)
            if profile is None:
                return None
            return self._update(self.profiles, profile.id, pick(fields, PROFILE_EDITABLE))

    def _with_users(self, profiles) -> List[WorkerWithUser]:
        result = []
        for profile in profiles:
            user = self.users.rows.get(profile.user_id)
            if user is None:
                continue
            result.append(WorkerWithUser(**profile.model_dump(), user=_copy(user)))
        return result

    def get_workers_by_skill(self, skill: str) -> List[WorkerWithUser]:
        needle = skill.lower()
        profiles = sorted(
            (p for p in self.profiles.values() if needle in p.primary_skill.lower()),
            key=lambda p: p.id,
        )
        return self._with_users(profiles)

    def get_top_rated_workers(self, limit: int = TOP_RATED_DEFAULT_LIMIT) -> List[WorkerWithUser]:
        profiles = sorted(
            self.profiles.values(),
            key=lambda p: (-p.average_rating, -p.total_ratings, p.id),
        )
        return self._with_users(profiles)[:limit]

    # --- Jobs ---

    def _hydrate_job(self, job) -> Optional[JobWithEmployer]:
        employer = self.users.rows.get(job.employer_id)
        if employer is None:
            return None
        return JobWithEmployer(**job.model_dump(), employer=_copy(employer))

    def get_job(self, job_id: int) -> Optional[JobWithEmployer]:
        job = self.jobs.rows.get(job_id)
        return self._hydrate_job(job) if job is not None else None

    def get_jobs(self, category=None, location=None, is_active=None) -> List[JobWithEmployer]:
        jobs = self.jobs.values()
        if category:
            jobs = [j for j in jobs if j.category == category]
        if location:
            jobs = [j for j in jobs if location.lower() in j.location.lower()]
        if is_active is not None:
            jobs = [j for j in jobs if j.is_active == is_active]
        jobs.sort(key=lambda j: (j.created_at, j.id), reverse=True)
        hydrated = (self._hydrate_job(j) for j in jobs)
        return [j for j in hydrated if j is not None]

    def create_job(self, *, employer_id, title, description, location, category, wage, duration=None) -> Job:
        with self._lock:
            job = self.jobs.insert(
                Job,
                employer_id=employer_id,
                title=title,
                description=description,
                location=location,
                category=category,
                wage=wage,
                duration=duration,
                is_active=True,
                created_at=utcnow(),
            )
            return _copy(job)

    def update_job(self, job_id: int, **fields) -> Optional[Job]:
        with self._lock:
            return self._update(self.jobs, job_id, pick(fields, JOB_EDITABLE))

    def get_jobs_by_employer(self, employer_id: int) -> List[Job]:
        jobs = [j for j in self.jobs.values() if j.employer_id == employer_id]
        jobs.sort(key=lambda j: (j.created_at, j.id), reverse=True)
        return [_copy(j) for j in jobs]

    # --- Applications ---

    def get_application(self, application_id: int) -> Optional[Application]:
        return _copy(self.applications.rows.get(application_id))

    def get_application_for(self, job_id: int, worker_id: int) -> Optional[Application]:
        for app in self.applications.values():
            if app.job_id == job_id and app.worker_id == worker_id:
                return _copy(app)
        return None

    def get_applications_by_worker(self, worker_id: int) -> List[ApplicationWithJob]:
        apps = sorted(
            (a for a in self.applications.values() if a.worker_id == worker_id),
            key=lambda a: (a.applied_at, a.id),
            reverse=True,
        )
        result = []
        for app in apps:
            job = self.jobs.rows.get(app.job_id)
            if job is not None:
                result.append(ApplicationWithJob(**app.model_dump(), job=_copy(job)))
        return result

    def get_applications_by_job(self, job_id: int) -> List[ApplicationWithWorker]:
        apps = sorted(
            (a for a in self.applications.values() if a.job_id == job_id),
            key=lambda a: (a.applied_at, a.id),
        )
        result = []
        for app in apps:
            worker = self.users.rows.get(app.worker_id)
            if worker is not None:
                result.append(ApplicationWithWorker(**app.model_dump(), worker=_copy(worker)))
        return result

    def create_application(self, *, job_id: int, worker_id: int) -> Application:
        with self._lock:
            if self.get_application_for(job_id, worker_id) is not None:
                raise DuplicateApplication(f"job={job_id} worker={worker_id}")
            app = self.applications.insert(
                Application, job_id=job_id, worker_id=worker_id, status="pending", applied_at=utcnow()
            )
            return _copy(app)

    def update_application_status(self, application_id: int, status: str,
                                  expected: Optional[str] = None) -> Optional[Application]:
        with self._lock:
            app = self.applications.rows.get(application_id)
            if app is None:
                return None
            if expected is not None and app.status != expected:
                return _copy(app)
            return self._update(self.applications, application_id, {"status": status})

    # --- Ratings ---

    def get_ratings_by_worker(self, worker_id: int) -> List[Rating]:
        ratings = sorted(
            (r for r in self.ratings.values() if r.worker_id == worker_id),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )
        return [_copy(r) for r in ratings]

    def create_rating(self, *, worker_id, employer_id, job_id, rating, comment=None) -> Rating:
        with self._lock:
            row = self.ratings.insert(
                Rating,
                worker_id=worker_id,
                employer_id=employer_id,
                job_id=job_id,
                rating=rating,
                comment=comment,
                created_at=utcnow(),
            )
            profile = self._profile_row(worker_id)
            if profile is not None:
                scores = [r.rating for r in self.ratings.values() if r.worker_id == worker_id]
                self._update(
                    self.profiles,
                    profile.id,
                    {"average_rating": rating_average(sum(scores), len(scores)), "total_ratings": len(scores)},
                )
            return _copy(row)

    # --- Verification documents ---

    def get_verification_document(self, document_id: int) -> Optional[VerificationDocument]:
        return _copy(self.documents.rows.get(document_id))

    def get_verification_documents(self, user_id: int) -> List[VerificationDocument]:
        docs = sorted((d for d in self.documents.values() if d.user_id == user_id), key=lambda d: d.id)
        return [_copy(d) for d in docs]

    def create_verification_document(self, *, user_id, document_type, document_number,
                                     document_image_url=None, date_of_birth=None, age=None) -> VerificationDocument:
        with self._lock:
            doc = self.documents.insert(
                VerificationDocument,
                user_id=user_id,
                document_type=document_type,
                document_number=document_number,
                document_image_url=document_image_url,
                submitted_at=utcnow(),
            )
            changes = {"verification_status": "pending", "is_verified": False}
            if date_of_birth is not None:
                changes.update(date_of_birth=date_of_birth, age=age)
            self._update(self.users, user_id, changes)
            return _copy(doc)

    def review_verification_document(self, document_id: int, status: str,
                                     notes: Optional[str] = None) -> Optional[VerificationDocument]:
        with self._lock:
            doc = self.documents.rows.get(document_id)
            if doc is None:
                return None
            reviewed = self._update(
                self.documents, document_id, {"verification_notes": notes, "reviewed_at": utcnow()}
            )
            verified = status == "verified"
            self._update(self.users, doc.user_id, {"verification_status": status, "is_verified": verified})
            profile = self._profile_row(doc.user_id)
            if profile is not None:
                self._update(self.profiles, profile.id, {"verified": verified})
            return reviewed

    # --- Conversations and messages ---

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        return _copy(self.conversations.rows.get(conversation_id))

    def _pair_row(self, user_a: int, user_b: int):
        pair = {user_a, user_b}
        for conv in self.conversations.values():
            if {conv.participant1_id, conv.participant2_id} == pair:
                return conv
        return None

    def get_conversation_by_participants(self, user_a: int, user_b: int) -> Optional[Conversation]:
        return _copy(self._pair_row(user_a, user_b))

    def get_conversations_by_user(self, user_id: int) -> List[ConversationSummary]:
        convs = sorted(
            (c for c in self.conversations.values() if c.has_participant(user_id)),
            key=lambda c: (c.last_message_at, c.id),
            reverse=True,
        )
        summaries = []
        for conv in convs:
            other = self.get_user(conv.other_participant(user_id))
            if other is None:
                continue
            msgs = self.get_messages_by_conversation(conv.id)
            summaries.append(
                ConversationSummary(
                    conversation=_copy(conv),
                    other_participant=other,
                    last_message=msgs[-1] if msgs else None,
                    unread_count=sum(1 for m in msgs if m.sender_id != user_id and m.read_at is None),
                )
            )
        return summaries

    def create_conversation(self, *, participant1_id, participant2_id, job_id=None) -> Conversation:
        with self._lock:
            existing = self._pair_row(participant1_id, participant2_id)
            if existing is not None:
                return _copy(existing)
            now = utcnow()
            conv = self.conversations.insert(
                Conversation,
                participant1_id=participant1_id,
                participant2_id=participant2_id,
                job_id=job_id,
                last_message_at=now,
                created_at=now,
            )
            return _copy(conv)

    def get_message(self, message_id: int) -> Optional[Message]:
        return _copy(self.messages.rows.get(message_id))

    def get_messages_by_conversation(self, conversation_id: int) -> List[Message]:
        msgs = sorted(
            (m for m in self.messages.values() if m.conversation_id == conversation_id),
            key=lambda m: (m.sent_at, m.id),
        )
        return [_copy(m) for m in msgs]

    def create_message(self, *, conversation_id, sender_id, content, metadata=None) -> Message:
        with self._lock:
            if conversation_id not in self.conversations.rows:
                raise LookupError(f"conversation {conversation_id} does not exist")
            now = utcnow()
            msg = self.messages.insert(
                Message,
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                sent_at=now,
                metadata=dict(metadata or {}),
            )
            self._update(self.conversations, conversation_id, {"last_message_at": now})
            return _copy(msg)

    def mark_messages_as_read(self, conversation_id: int, reader_id: int,
                              message_id: Optional[int] = None) -> int:
        with self._lock:
            now = utcnow()
            changed = 0
            for msg in self.messages.values():
                if msg.conversation_id != conversation_id or msg.sender_id == reader_id or msg.read_at is not None:
                    continue
                if message_id is not None and msg.id != message_id:
                    continue
                self._update(self.messages, msg.id, {"read_at": now})
                changed += 1
            return changed
