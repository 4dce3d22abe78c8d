
from sqlalchemy import Column, Integer, String, Boolean, Enum, Date, DateTime
from daywork.db.base import Base
from daywork.utils.dates import utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(Enum("worker", "employer", name="user_role"), nullable=False)
    location = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Identity verification
    date_of_birth = Column(Date, nullable=True)
    age = Column(Integer, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_status = Column(
        Enum("not_submitted", "pending", "verified", "rejected", name="verification_status"),
        default="not_submitted",
        nullable=False,
    )

    # Email confirmation
    email_verified = Column(Boolean, default=False, nullable=False)
    verification_code = Column(String(12), nullable=True)
    verification_code_expires = Column(DateTime, nullable=True)
