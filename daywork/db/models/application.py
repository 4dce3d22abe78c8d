
from sqlalchemy import Column, Integer, Enum, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from daywork.db.base import Base
from daywork.utils.dates import utcnow

class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("job_id", "worker_id", name="uq_application_job_worker"),)

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    worker_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum("pending", "accepted", "rejected", "completed", name="application_status"),
        default="pending",
        nullable=False,
    )
    applied_at = Column(DateTime, default=utcnow, nullable=False)

    job = relationship("Job")
    worker = relationship("User")
