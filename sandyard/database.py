# sandyard/database.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import load_settings
from .models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = load_settings().database_url

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Create tables if they do not exist"""
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
