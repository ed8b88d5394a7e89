"""
Database connection and session management.
"""
from sqlmodel import create_engine, SQLModel, Session
from courseapi.core.settings import settings


connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False

# Create database engine
engine = create_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,  # Verify connections before use
    connect_args=connect_args,
)


def create_db_and_tables():
    """Create database tables."""
    # Register table models on the metadata before creating
    from courseapi.db import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency to get database session."""
    with Session(engine) as session:
        yield session
