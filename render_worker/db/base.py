"""Declarative base SQLAlchemy 2.x."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base cho tất cả model (book_render_jobs, books)."""
    pass
