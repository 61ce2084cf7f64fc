"""Fixtures chung: SQLite tạm cho job store, storage giả cho processor."""
import os

# Phải đặt trước khi import render_worker (Settings đọc env lúc import)
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["MINIO_ENDPOINT"] = "minio.test"
os.environ["MINIO_USE_SSL"] = "true"
os.environ["MINIO_BUCKET_NAME"] = "books"

import pytest

from render_worker.db.base import Base
from render_worker.db.models import Book, BookRenderJob
from render_worker.db.session import make_engine, make_session_factory
from tests.fakes import PDF_KEY, PDF_URL, FakeStorage


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'render.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def make_book(session_factory):
    def _make(book_id: int = 1, pdf_url: str | None = PDF_URL, title: str = "Test Book") -> int:
        with session_factory() as session:
            session.add(Book(id=book_id, title=title, pdf_url=pdf_url))
            session.commit()
        return book_id
    return _make


@pytest.fixture
def storage():
    s = FakeStorage()
    s.add(PDF_KEY, b"%PDF-1.4 fake")
    return s


@pytest.fixture
def load_job(session_factory):
    def _load(job_id: int) -> BookRenderJob:
        with session_factory() as session:
            return session.get(BookRenderJob, job_id)
    return _load


@pytest.fixture
def load_book(session_factory):
    def _load(book_id: int) -> Book:
        with session_factory() as session:
            return session.get(Book, book_id)
    return _load
