"""Process-wide database engine and session factory.

The engine is created once at import time and shared by every request; API
handlers receive sessions through ``cannamap.api.deps.get_db`` and pass them
into the service layer.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cannamap.core.config import get_settings

settings = get_settings()

engine = create_engine(settings.database_url_sync, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
