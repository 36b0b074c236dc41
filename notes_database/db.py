import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///./notes.db"


# PUBLIC_INTERFACE
def get_database_url():
    """
    Retrieves the database URL from the environment variable DATABASE_URL.
    Falls back to a local SQLite file for development.
    """
    load_dotenv()
    return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


# PUBLIC_INTERFACE
def make_engine(db_url: str):
    """Creates an engine; SQLite connections may be shared across the request threadpool."""
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, future=True, echo=False, pool_pre_ping=True, connect_args=connect_args)


DATABASE_URL = get_database_url()

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# PUBLIC_INTERFACE
def get_db():
    """
    FastAPI dependency that provides a database session and makes
    sure it is closed after the request, including on error paths.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
