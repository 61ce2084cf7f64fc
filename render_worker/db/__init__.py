"""DB layer — SQLAlchemy 2.x sync (Session)."""
from render_worker.db.base import Base
from render_worker.db.models import Book, BookRenderJob, JobStatus
from render_worker.db.session import get_engine, get_session, get_session_factory, init_db

__all__ = ["Base", "Book", "BookRenderJob", "JobStatus", "get_engine", "get_session", "get_session_factory", "init_db"]
