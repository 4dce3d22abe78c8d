
from sqlalchemy import Column, Integer, String, Text, Enum, DateTime, ForeignKey
from daywork.db.base import Base
from daywork.utils.dates import utcnow

DOCUMENT_TYPES = ("aadhar_card", "voter_id", "passport", "driving_license", "pan_card", "other")

class VerificationDocument(Base):
    __tablename__ = "verification_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    document_type = Column(Enum(*DOCUMENT_TYPES, name="document_type"), nullable=False)
    document_number = Column(String(50), nullable=False)
    document_image_url = Column(String(500), nullable=True)
    verification_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
