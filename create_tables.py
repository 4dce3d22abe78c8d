import sys
import os

sys.path.append(os.getcwd())

from daywork.db.session import engine
from daywork.db.base import Base
import daywork.db.models  # registers every table on Base.metadata

def create_tables():
    print("Creating all tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created.")

if __name__ == "__main__":
    create_tables()
