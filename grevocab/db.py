from sqlmodel import SQLModel, create_engine, Session

from grevocab import config
from grevocab.models import User, VocabularyEntry  # noqa: F401  (register tables)

DATABASE_URL = config.DATABASE_URL

# SQLite needs check_same_thread disabled because FastAPI runs sync routes in a threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def init_db() -> None:
    """Initializes the database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
