
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from daywork.core.config import settings


def make_engine(url: str):
    # SQLite connections are shared across request threads
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=not url.startswith("sqlite"))


engine = make_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
