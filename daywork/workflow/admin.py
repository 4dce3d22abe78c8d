import logging

from daywork.storage import Storage

logger = logging.getLogger(__name__)


def delete_all_users(storage: Storage):
    logger.warning("Deleting all users and their dependent records")
    storage.delete_all_users()
