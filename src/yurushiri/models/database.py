"""Database configuration and session dependency"""

import os

from sqlalchemy import create_engine
from sqlmodel import Session

from yurushiri.config import config

# Database URL from config
DATABASE_URL = config["database_url"]

# Validate DATABASE_URL exists
if not DATABASE_URL:
    raise ValueError(
        "DATABASE_URL environment variable is not set. "
        "Use the Postgres connection string of the hosted database or a local .env file."
    )

# Supabase hands out postgres:// URLs; SQLAlchemy only accepts postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + DATABASE_URL[len("postgres://") :]

engine = create_engine(
    DATABASE_URL,
    echo=os.getenv("DEBUG", "false").lower() == "true",
    pool_pre_ping=True,
)


def get_db():
    """Get database session"""
    with Session(engine) as session:
        yield session
