"""Entity records returned by the storage layer, and request bodies."""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

Role = Literal["worker", "employer"]
VerificationStatus = Literal["not_submitted", "pending", "verified", "rejected"]
ApplicationStatus = Literal["pending", "accepted", "rejected", "completed"]
DocumentType = Literal["aadhar_card", "voter_id", "passport", "driving_license", "pan_card", "other"]


class Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Entity records ---

class User(Record):
    id: int
    username: str
    hashed_password: str = Field(exclude=True)
    full_name: str
    phone: str
    email: Optional[str] = None
    role: Role
    location: str
    created_at: datetime
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    is_verified: bool = False
    verification_status: VerificationStatus = "not_submitted"
    email_verified: bool = False
    verification_code: Optional[str] = Field(default=None, exclude=True)
    verification_code_expires: Optional[datetime] = Field(default=None, exclude=True)


class WorkerProfile(Record):
    id: int
    user_id: int
    primary_skill: str
    description: Optional[str] = None
    is_available: bool = True
    average_rating: float = 0.0
    total_ratings: int = 0
    verified: bool = False


class WorkerWithUser(WorkerProfile):
    user: User


class WorkerListing(BaseModel):
    user: User
    profile: Optional[WorkerProfile] = None


class Job(Record):
    id: int
    employer_id: int
    title: str
    description: str
    location: str
    category: str
    wage: str
    duration: Optional[str] = None
    is_active: bool = True
    created_at: datetime


class JobWithEmployer(Job):
    employer: User


class Application(Record):
    id: int
    job_id: int
    worker_id: int
    status: ApplicationStatus = "pending"
    applied_at: datetime


class ApplicationWithJob(Application):
    job: Job


class ApplicationWithWorker(Application):
    worker: User


class Rating(Record):
    id: int
    worker_id: int
    employer_id: int
    job_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class VerificationDocument(Record):
    id: int
    user_id: int
    document_type: DocumentType
    document_number: str
    document_image_url: Optional[str] = None
    verification_notes: Optional[str] = None
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None


class Conversation(Record):
    id: int
    participant1_id: int
    participant2_id: int
    job_id: Optional[int] = None
    last_message_at: datetime
    created_at: datetime

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant1_id, self.participant2_id)

    def other_participant(self, user_id: int) -> int:
        return self.participant2_id if self.participant1_id == user_id else self.participant1_id


class Message(Record):
    id: int
    conversation_id: int
    sender_id: int
    content: str
    sent_at: datetime
    read_at: Optional[datetime] = None
    metadata: dict = Field(default_factory=dict)


class ConversationSummary(BaseModel):
    conversation: Conversation
    other_participant: User
    last_message: Optional[Message] = None
    unread_count: int = 0


# --- Request bodies ---

def _reject_null(value):
    # Partial updates may omit a column but not blank a NOT NULL one
    if value is None:
        raise ValueError("must not be null")
    return value


class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=72)
    full_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=5, max_length=20)
    email: EmailStr
    role: Role
    location: str = Field(min_length=1)
    primary_skill: Optional[str] = None
    description: Optional[str] = None


class LoginIn(BaseModel):
    username: str
    password: str


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, min_length=5, max_length=20)
    email: Optional[EmailStr] = None
    location: Optional[str] = Field(default=None, min_length=1)

    @field_validator("full_name", "phone", "location")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class WorkerProfileUpdate(BaseModel):
    primary_skill: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_available: Optional[bool] = None

    @field_validator("primary_skill", "is_available")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class JobCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    location: str = Field(min_length=1)
    category: str = Field(min_length=1)
    wage: str = Field(min_length=1)
    duration: Optional[str] = None


class JobUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    wage: Optional[str] = Field(default=None, min_length=1)
    duration: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title", "description", "location", "category", "wage", "is_active")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class ApplicationStatusUpdate(BaseModel):
    status: str


class RatingCreate(BaseModel):
    worker_id: int
    job_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class ConversationCreate(BaseModel):
    participant_id: int
    job_id: Optional[int] = None


class MessageCreate(BaseModel):
    content: str
    metadata: dict = Field(default_factory=dict)


class VerifyEmailIn(BaseModel):
    code: str = Field(pattern=r"^[0-9]{6}$")


class VerificationReview(BaseModel):
    status: Literal["verified", "rejected"]
    notes: Optional[str] = None


class UserSearchResult(BaseModel):
    id: int
    username: str
    full_name: str
    location: str
    role: Role


class DashboardJob(Job):
    applications: List[ApplicationWithWorker] = []
