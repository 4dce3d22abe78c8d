"""SQLAlchemy-backed storage."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from daywork import schemas
from daywork.db import models
from daywork.db.base import Base
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

logger = logging.getLogger(__name__)


def _message(row: models.Message) -> schemas.Message:
    return schemas.Message(
        id=row.id,
        conversation_id=row.conversation_id,
        sender_id=row.sender_id,
        content=row.content,
        sent_at=row.sent_at,
        read_at=row.read_at,
        metadata=row.metadata_ or {},
    )


def _maybe(schema_cls, row):
    return schema_cls.model_validate(row) if row is not None else None


class SqlStorage(Storage):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create_schema(self):
        Base.metadata.create_all(bind=self._session_factory.kw["bind"])

    def _set_fields(self, model_cls, schema_cls, row_id: int, fields: dict):
        with self._session_factory() as db:
            row = db.query(model_cls).filter(model_cls.id == row_id).first()
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            db.commit()
            return schema_cls.model_validate(row)

    # --- Users ---

    def get_user(self, user_id: int) -> Optional[schemas.User]:
        with self._session_factory() as db:
            return _maybe(schemas.User, db.query(models.User).filter(models.User.id == user_id).first())

    def get_user_by_username(self, username: str) -> Optional[schemas.User]:
        with self._session_factory() as db:
            return _maybe(schemas.User, db.query(models.User).filter(models.User.username == username).first())

    def get_users(self, role: Optional[str] = None) -> List[schemas.User]:
        with self._session_factory() as db:
            query = db.query(models.User)
            if role:
                query = query.filter(models.User.role == role)
            return [schemas.User.model_validate(u) for u in query.order_by(models.User.id).all()]

    def create_user(self, *, username, hashed_password, full_name, phone, email, role, location) -> schemas.User:
        with self._session_factory() as db:
            if db.query(models.User.id).filter(models.User.username == username).first():
                raise DuplicateUsername(username)
            user = models.User(
                username=username,
                hashed_password=hashed_password,
                full_name=full_name,
                phone=phone,
                email=email,
                role=role,
                location=location,
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateUsername(username)
            return schemas.User.model_validate(user)

    def update_user(self, user_id: int, **fields) -> Optional[schemas.User]:
        return self._set_fields(models.User, schemas.User, user_id, pick(fields, USER_EDITABLE))

    def update_user_verification(self, user_id: int, status: str) -> Optional[schemas.User]:
        return self._set_fields(
            models.User, schemas.User, user_id,
            {"verification_status": status, "is_verified": status == "verified"},
        )

    def update_user_verification_code(self, user_id: int, code: str, expires: datetime) -> Optional[schemas.User]:
        return self._set_fields(
            models.User, schemas.User, user_id,
            {"verification_code": code, "verification_code_expires": expires},
        )

    def update_user_email_verification(self, user_id: int, verified: bool) -> Optional[schemas.User]:
        return self._set_fields(
            models.User, schemas.User, user_id,
            {"email_verified": verified, "verification_code": None, "verification_code_expires": None},
        )

    def search_users(self, query: str, exclude_user_id: int, role: Optional[str] = None,
                     limit: int = SEARCH_LIMIT) -> List[schemas.User]:
        needle = query.lower()
        with self._session_factory() as db:
            q = db.query(models.User).filter(
                models.User.id != exclude_user_id,
                or_(
                    func.lower(models.User.username).contains(needle, autoescape=True),
                    func.lower(models.User.full_name).contains(needle, autoescape=True),
                ),
            )
            if role:
                q = q.filter(models.User.role == role)
            return [schemas.User.model_validate(u) for u in q.order_by(models.User.id).limit(limit).all()]

    def delete_all_users(self) -> None:
        # Children before parents so foreign keys hold at every step
        ordered = (
            models.Message,
            models.Conversation,
            models.Rating,
            models.Application,
            models.Job,
            models.VerificationDocument,
            models.WorkerProfile,
            models.User,
        )
        with self._session_factory() as db:
            with db.begin():
                for model_cls in ordered:
                    deleted = db.query(model_cls).delete(synchronize_session=False)
                    logger.info("Deleted %d rows from %s", deleted, model_cls.__tablename__)

    # --- Worker profiles ---

    def get_worker_profile(self, user_id: int) -> Optional[schemas.WorkerProfile]:
        with self._session_factory() as db:
            row = db.query(models.WorkerProfile).filter(models.WorkerProfile.user_id == user_id).first()
            return _maybe(schemas.WorkerProfile, row)

    def create_worker_profile(self, *, user_id, primary_skill, description=None,
                              is_available=True) -> schemas.WorkerProfile:
        with self._session_factory() as db:
            existing = db.query(models.WorkerProfile).filter(models.WorkerProfile.user_id == user_id).first()
            if existing is not None:
                return schemas.WorkerProfile.model_validate(existing)
            profile = models.WorkerProfile(
                user_id=user_id,
                primary_skill=primary_skill,
                description=description,
                is_available=is_available,
                average_rating=0.0,
                total_ratings=0,
                verified=False,
            )
            db.add(profile)
            try:
                db.commit()
            except IntegrityError:
                # Lost a race with another lazy creation for the same worker
                db.rollback()
                profile = db.query(models.WorkerProfile).filter(models.WorkerProfile.user_id == user_id).one()
            return schemas.WorkerProfile.model_validate(profile)

    def update_worker_profile(self, user_id: int, **fields) -> Optional[schemas.WorkerProfile]:
        with self._session_factory() as db:
            row = db.query(models.WorkerProfile).filter(models.WorkerProfile.user_id == user_id).first()
            if row is None:
                return None
            for key, value in pick(fields, PROFILE_EDITABLE).items():
                setattr(row, key, value)
            db.commit()
            return schemas.WorkerProfile.model_validate(row)

    def _with_users(self, rows) -> List[schemas.WorkerWithUser]:
        return [
            schemas.WorkerWithUser(
                **schemas.WorkerProfile.model_validate(profile).model_dump(),
                user=schemas.User.model_validate(user),
            )
            for profile, user in rows
        ]

    def get_workers_by_skill(self, skill: str) -> List[schemas.WorkerWithUser]:
        with self._session_factory() as db:
            rows = (
                db.query(models.WorkerProfile, models.User)
                .join(models.User, models.WorkerProfile.user_id == models.User.id)
                .filter(func.lower(models.WorkerProfile.primary_skill).contains(skill.lower(), autoescape=True))
                .order_by(models.WorkerProfile.id)
                .all()
            )
            return self._with_users(rows)

    def get_top_rated_workers(self, limit: int = TOP_RATED_DEFAULT_LIMIT) -> List[schemas.WorkerWithUser]:
        with self._session_factory() as db:
            rows = (
                db.query(models.WorkerProfile, models.User)
                .join(models.User, models.WorkerProfile.user_id == models.User.id)
                .order_by(
                    desc(models.WorkerProfile.average_rating),
                    desc(models.WorkerProfile.total_ratings),
                    models.WorkerProfile.id,
                )
                .limit(limit)
                .all()
            )
            return self._with_users(rows)

    # --- Jobs ---

    @staticmethod
    def _job_with_employer(job, employer) -> schemas.JobWithEmployer:
        return schemas.JobWithEmployer(
            **schemas.Job.model_validate(job).model_dump(),
            employer=schemas.User.model_validate(employer),
        )

    def get_job(self, job_id: int) -> Optional[schemas.JobWithEmployer]:
        with self._session_factory() as db:
            row = (
                db.query(models.Job, models.User)
                .join(models.User, models.Job.employer_id == models.User.id)
                .filter(models.Job.id == job_id)
                .first()
            )
            if row is None:
                return None
            return self._job_with_employer(*row)

    def get_jobs(self, category=None, location=None, is_active=None) -> List[schemas.JobWithEmployer]:
        with self._session_factory() as db:
            query = db.query(models.Job, models.User).join(models.User, models.Job.employer_id == models.User.id)
            if category:
                query = query.filter(models.Job.category == category)
            if location:
                query = query.filter(func.lower(models.Job.location).contains(location.lower(), autoescape=True))
            if is_active is not None:
                query = query.filter(models.Job.is_active == is_active)
            rows = query.order_by(desc(models.Job.created_at), desc(models.Job.id)).all()
            return [self._job_with_employer(job, employer) for job, employer in rows]

    def create_job(self, *, employer_id, title, description, location, category, wage, duration=None) -> schemas.Job:
        with self._session_factory() as db:
            job = models.Job(
                employer_id=employer_id,
                title=title,
                description=description,
                location=location,
                category=category,
                wage=wage,
                duration=duration,
                is_active=True,
            )
            db.add(job)
            db.commit()
            return schemas.Job.model_validate(job)

    def update_job(self, job_id: int, **fields) -> Optional[schemas.Job]:
        return self._set_fields(models.Job, schemas.Job, job_id, pick(fields, JOB_EDITABLE))

    def get_jobs_by_employer(self, employer_id: int) -> List[schemas.Job]:
        with self._session_factory() as db:
            rows = (
                db.query(models.Job)
                .filter(models.Job.employer_id == employer_id)
                .order_by(desc(models.Job.created_at), desc(models.Job.id))
                .all()
            )
            return [schemas.Job.model_validate(j) for j in rows]

    # --- Applications ---

    def get_application(self, application_id: int) -> Optional[schemas.Application]:
        with self._session_factory() as db:
            row = db.query(models.Application).filter(models.Application.id == application_id).first()
            return _maybe(schemas.Application, row)

    def get_application_for(self, job_id: int, worker_id: int) -> Optional[schemas.Application]:
        with self._session_factory() as db:
            row = (
                db.query(models.Application)
                .filter(models.Application.job_id == job_id, models.Application.worker_id == worker_id)
                .first()
            )
            return _maybe(schemas.Application, row)

    def get_applications_by_worker(self, worker_id: int) -> List[schemas.ApplicationWithJob]:
        with self._session_factory() as db:
            rows = (
                db.query(models.Application, models.Job)
                .join(models.Job, models.Application.job_id == models.Job.id)
                .filter(models.Application.worker_id == worker_id)
                .order_by(desc(models.Application.applied_at), desc(models.Application.id))
                .all()
            )
            return [
                schemas.ApplicationWithJob(
                    **schemas.Application.model_validate(app).model_dump(),
                    job=schemas.Job.model_validate(job),
                )
                for app, job in rows
            ]

    def get_applications_by_job(self, job_id: int) -> List[schemas.ApplicationWithWorker]:
        with self._session_factory() as db:
            rows = (
                db.query(models.Application, models.User)
                .join(models.User, models.Application.worker_id == models.User.id)
                .filter(models.Application.job_id == job_id)
                .order_by(models.Application.applied_at, models.Application.id)
                .all()
            )
            return [
                schemas.ApplicationWithWorker(
                    **schemas.Application.model_validate(app).model_dump(),
                    worker=schemas.User.model_validate(worker),
                )
                for app, worker in rows
            ]

    def create_application(self, *, job_id: int, worker_id: int) -> schemas.Application:
        with self._session_factory() as db:
            app = models.Application(job_id=job_id, worker_id=worker_id, status="pending")
            db.add(app)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateApplication(f"job={job_id} worker={worker_id}")
            return schemas.Application.model_validate(app)

    def update_application_status(self, application_id: int, status: str,
                                  expected: Optional[str] = None) -> Optional[schemas.Application]:
        with self._session_factory() as db:
            query = db.query(models.Application).filter(models.Application.id == application_id)
            if expected is not None:
                query = query.filter(models.Application.status == expected)
            query.update({"status": status}, synchronize_session=False)
            db.commit()
            row = db.query(models.Application).filter(models.Application.id == application_id).first()
            return _maybe(schemas.Application, row)

    # --- Ratings ---

    def get_ratings_by_worker(self, worker_id: int) -> List[schemas.Rating]:
        with self._session_factory() as db:
            rows = (
                db.query(models.Rating)
                .filter(models.Rating.worker_id == worker_id)
                .order_by(desc(models.Rating.created_at), desc(models.Rating.id))
                .all()
            )
            return [schemas.Rating.model_validate(r) for r in rows]

    def create_rating(self, *, worker_id, employer_id, job_id, rating, comment=None) -> schemas.Rating:
        with self._session_factory() as db:
            row = models.Rating(
                worker_id=worker_id, employer_id=employer_id, job_id=job_id, rating=rating, comment=comment
            )
            # Insert first: the write lock is taken before the aggregate is read
            db.add(row)
            db.flush()
            profile = (
                db.query(models.WorkerProfile)
                .filter(models.WorkerProfile.user_id == worker_id)
                .with_for_update()
                .first()
            )
            if profile is not None:
                total, count = (
                    db.query(func.coalesce(func.sum(models.Rating.rating), 0), func.count(models.Rating.id))
                    .filter(models.Rating.worker_id == worker_id)
                    .one()
                )
                profile.average_rating = rating_average(float(total), count)
                profile.total_ratings = count
            db.commit()
            return schemas.Rating.model_validate(row)

    # --- Verification documents ---

    def get_verification_document(self, document_id: int) -> Optional[schemas.VerificationDocument]:
        with self._session_factory() as db:
            row = db.query(models.VerificationDocument).filter(models.VerificationDocument.id == document_id).first()
            return _maybe(schemas.VerificationDocument, row)

    def get_verification_documents(self, user_id: int) -> List[schemas.VerificationDocument]:
        with self._session_factory() as db:
            rows = (
                db.query(models.VerificationDocument)
                .filter(models.VerificationDocument.user_id == user_id)
                .order_by(models.VerificationDocument.id)
                .all()
            )
            return [schemas.VerificationDocument.model_validate(d) for d in rows]

    def create_verification_document(self, *, user_id, document_type, document_number,
                                     document_image_url=None, date_of_birth=None,
                                     age=None) -> schemas.VerificationDocument:
        with self._session_factory() as db:
            doc = models.VerificationDocument(
                user_id=user_id,
                document_type=document_type,
                document_number=document_number,
                document_image_url=document_image_url,
            )
            db.add(doc)
            changes = {"verification_status": "pending", "is_verified": False}
            if date_of_birth is not None:
                changes.update(date_of_birth=date_of_birth, age=age)
            db.query(models.User).filter(models.User.id == user_id).update(changes, synchronize_session=False)
            db.commit()
            return schemas.VerificationDocument.model_validate(doc)

    def review_verification_document(self, document_id: int, status: str,
                                     notes: Optional[str] = None) -> Optional[schemas.VerificationDocument]:
        verified = status == "verified"
        with self._session_factory() as db:
            doc = db.query(models.VerificationDocument).filter(models.VerificationDocument.id == document_id).first()
            if doc is None:
                return None
            doc.verification_notes = notes
            doc.reviewed_at = utcnow()
            db.query(models.User).filter(models.User.id == doc.user_id).update(
                {"verification_status": status, "is_verified": verified}, synchronize_session=False
            )
            db.query(models.WorkerProfile).filter(models.WorkerProfile.user_id == doc.user_id).update(
                {"verified": verified}, synchronize_session=False
            )
            db.commit()
            return schemas.VerificationDocument.model_validate(doc)

    # --- Conversations and messages ---

    @staticmethod
    def _pair_filter(user_a: int, user_b: int):
        return or_(
            and_(models.Conversation.participant1_id == user_a, models.Conversation.participant2_id == user_b),
            and_(models.Conversation.participant1_id == user_b, models.Conversation.participant2_id == user_a),
        )

    def get_conversation(self, conversation_id: int) -> Optional[schemas.Conversation]:
        with self._session_factory() as db:
            row = db.query(models.Conversation).filter(models.Conversation.id == conversation_id).first()
            return _maybe(schemas.Conversation, row)

    def get_conversation_by_participants(self, user_a: int, user_b: int) -> Optional[schemas.Conversation]:
        with self._session_factory() as db:
            row = (
                db.query(models.Conversation)
                .filter(self._pair_filter(user_a, user_b))
                .order_by(models.Conversation.id)
                .first()
            )
            return _maybe(schemas.Conversation, row)

    def get_conversations_by_user(self, user_id: int) -> List[schemas.ConversationSummary]:
        with self._session_factory() as db:
            convs = (
                db.query(models.Conversation)
                .filter(
                    or_(models.Conversation.participant1_id == user_id, models.Conversation.participant2_id == user_id)
                )
                .order_by(desc(models.Conversation.last_message_at), desc(models.Conversation.id))
                .all()
            )
            summaries = []
            for row in convs:
                conv = schemas.Conversation.model_validate(row)
                other = db.query(models.User).filter(models.User.id == conv.other_participant(user_id)).first()
                if other is None:
                    continue
                last = (
                    db.query(models.Message)
                    .filter(models.Message.conversation_id == conv.id)
                    .order_by(desc(models.Message.sent_at), desc(models.Message.id))
                    .first()
                )
                unread = (
                    db.query(func.count(models.Message.id))
                    .filter(
                        models.Message.conversation_id == conv.id,
                        models.Message.sender_id != user_id,
                        models.Message.read_at.is_(None),
                    )
                    .scalar()
                )
                summaries.append(
                    schemas.ConversationSummary(
                        conversation=conv,
                        other_participant=schemas.User.model_validate(other),
                        last_message=_message(last) if last is not None else None,
                        unread_count=unread or 0,
                    )
                )
            return summaries

    def create_conversation(self, *, participant1_id, participant2_id, job_id=None) -> schemas.Conversation:
        with self._session_factory() as db:
            existing = (
                db.query(models.Conversation)
                .filter(self._pair_filter(participant1_id, participant2_id))
                .order_by(models.Conversation.id)
                .first()
            )
            if existing is not None:
                return schemas.Conversation.model_validate(existing)
            now = utcnow()
            conv = models.Conversation(
                participant1_id=participant1_id,
                participant2_id=participant2_id,
                job_id=job_id,
                last_message_at=now,
                created_at=now,
            )
            db.add(conv)
            db.commit()
            return schemas.Conversation.model_validate(conv)

    def get_message(self, message_id: int) -> Optional[schemas.Message]:
        with self._session_factory() as db:
            row = db.query(models.Message).filter(models.Message.id == message_id).first()
            return _message(row) if row is not None else None

    def get_messages_by_conversation(self, conversation_id: int) -> List[schemas.Message]:
        with self._session_factory() as db:
            rows = (
                db.query(models.Message)
                .filter(models.Message.conversation_id == conversation_id)
                .order_by(models.Message.sent_at, models.Message.id)
                .all()
            )
            return [_message(m) for m in rows]

    def create_message(self, *, conversation_id, sender_id, content, metadata=None) -> schemas.Message:
        with self._session_factory() as db:
            conv = db.query(models.Conversation).filter(models.Conversation.id == conversation_id).first()
            if conv is None:
                raise LookupError(f"conversation {conversation_id} does not exist")
            now = utcnow()
            msg = models.Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                sent_at=now,
                metadata_=dict(metadata or {}),
            )
            db.add(msg)
            conv.last_message_at = now
            db.commit()
            return _message(msg)

    def mark_messages_as_read(self, conversation_id: int, reader_id: int,
                              message_id: Optional[int] = None) -> int:
        with self._session_factory() as db:
            query = db.query(models.Message).filter(
                models.Message.conversation_id == conversation_id,
                models.Message.sender_id != reader_id,
                models.Message.read_at.is_(None),
            )
            if message_id is not None:
                query = query.filter(models.Message.id == message_id)
            changed = query.update({"read_at": utcnow()}, synchronize_session=False)
            db.commit()
            return changed
