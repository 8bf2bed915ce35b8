from sqlmodel import SQLModel, create_engine, Session

from flashgen import config
from flashgen import models  # noqa: F401  registers tables on SQLModel.metadata

DATABASE_URL = config.DATABASE_URL

# SQLite connections are shared with the threadpool that runs sync endpoints
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def init_db() -> None:
    """Create all tables if they don't exist."""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
