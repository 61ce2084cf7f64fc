"""ORM models — bảng book_render_jobs (của pipeline) và một phần bảng books (do catalog quản lý)."""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from render_worker.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)
TERMINAL_STATUSES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)

_ACTIVE_WHERE = text("status IN ('pending', 'processing')")


class Book(Base):
    """Chỉ các cột pipeline đọc/ghi. Bảng do hệ thống catalog tạo và sở hữu."""
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_images_prefix: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_images_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_images_rendered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class BookRenderJob(Base):
    """Bảng book_render_jobs: một lần thử render toàn bộ trang của một cuốn sách."""
    __tablename__ = "book_render_jobs"
    __table_args__ = (
        # Tối đa một job pending/processing cho mỗi book
        Index(
            "uq_book_render_jobs_active_book",
            "book_id",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    book_id: Mapped[int] = mapped_column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, index=True, default=JobStatus.PENDING.value)
    processed_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "status": self.status,
            "processed_pages": self.processed_pages,
            "total_pages": self.total_pages,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error_message": self.error_message,
            "created_at": self.created_at,
        }
