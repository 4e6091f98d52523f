"""
SQLAlchemy connection and setup for the payment ledger
PostgreSQL (Neon/Supabase) in production, SQLite for local runs and tests
"""
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

from utils.errors import ConfigurationError

# Load environment variables from project root
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
load_dotenv(dotenv_path=env_path)

DATABASE_URL = (os.getenv("DATABASE_URL", "") or "").strip()

if not DATABASE_URL:
    raise ConfigurationError("DATABASE_URL environment variable is required for the payment ledger")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 10,
        "max_overflow": 20,
    }


# Create SQLAlchemy engine
engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI routes to get database session
    Usage:
        @router.get("/items")
        def list_items(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Initialize database tables
    Call this on application startup
    """
    # Import models so their tables are registered on Base.metadata
    import models.ledger  # noqa: F401
    import models.catalog  # noqa: F401

    Base.metadata.create_all(bind=engine)
