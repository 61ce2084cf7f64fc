"""Sync engine và session — SQLAlchemy 2.x, dùng trong CLI, Celery worker và API."""
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from render_worker.core.config import settings


def _sync_url(url: str) -> str:
    """postgresql:// -> postgresql+psycopg:// (psycopg v3)."""
    if url.startswith("postgresql://") and "postgresql+psycopg" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def make_engine(url: str) -> Engine:
    url = _sync_url(url)
    if url.startswith("sqlite"):
        return create_engine(url, echo=False)
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Engine tạo lần đầu khi cần (import module không mở kết nối DB)."""
    return make_engine(settings.database_url)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return make_session_factory(get_engine())


@contextmanager
def get_session(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Context manager: mỗi lần gọi trả về một session, tự commit/rollback và đóng."""
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """Tạo bảng book_render_jobs (và index) nếu chưa có. Bảng books thuộc catalog, không tạo ở đây."""
    from render_worker.db.models import BookRenderJob

    BookRenderJob.__table__.create(bind=engine or get_engine(), checkfirst=True)
