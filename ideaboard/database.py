from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from ideaboard.config import DATABASE_URL
import os

SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"


def _engine_kwargs(url: str) -> dict:
    # SQLite shares one connection so an in-memory DB survives across threads
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True}


# creating the SQLAlchemy engine
engine = create_engine(DATABASE_URL, echo=SQL_ECHO, future=True, **_engine_kwargs(DATABASE_URL))

# Base class for ORM models
Base = declarative_base()
