from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings

# SQLite connections are bound to the creating thread by default, but FastAPI
# runs sync dependencies in a threadpool
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# Create database engine - manages connection pool
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

# Create session factory - each request gets a new session
# autocommit=False: Changes require explicit commit (prevents accidental commits)
# autoflush=False: Don't auto-flush before queries
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()


def get_db():
    """
    Dependency for getting database session.

    The session is closed after the request completes (via finally block).
    Using yield makes this a generator dependency - FastAPI handles the cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        # Always close session, even if request raises an exception
        db.close()
