# Importing the models registers them on Base.metadata
from daywork.db.models.user import User
from daywork.db.models.worker_profile import WorkerProfile
from daywork.db.models.job import Job
from daywork.db.models.application import Application
from daywork.db.models.rating import Rating
from daywork.db.models.verification import VerificationDocument
from daywork.db.models.messaging import Conversation, Message

__all__ = [
    "User",
    "WorkerProfile",
    "Job",
    "Application",
    "Rating",
    "VerificationDocument",
    "Conversation",
    "Message",
]
