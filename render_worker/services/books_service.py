"""Đọc/ghi phần bảng books mà pipeline render được phép chạm tới."""
from __future__ import annotations
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from render_worker.core.logging import get_logger
from render_worker.db.models import Book
from render_worker.services.jobs_service import get_latest_job_for_book

logger = get_logger(__name__)


def get_book(session: Session, book_id: int) -> Book | None:
    return session.get(Book, book_id)


def mark_book_rendered(
    session: Session,
    book_id: int,
    prefix: str,
    page_count: int,
    rendered_at: datetime,
) -> None:
    """Ghi page_images_* (và page_count) — chỉ gọi trong cùng transaction đánh dấu job completed."""
    stmt = (
        update(Book)
        .where(Book.id == book_id)
        .values(
            page_images_prefix=prefix,
            page_images_count=page_count,
            page_images_rendered_at=rendered_at,
            page_count=page_count,
        )
    )
    session.execute(stmt, execution_options={"synchronize_session": "fetch"})
    logger.info(f"[DB] UPDATE books: book_id={book_id}, page_images_prefix={prefix}, page_images_count={page_count}")


def get_render_status(session: Session, book_id: int) -> dict:
    """Trạng thái render cho dashboard: đã có ảnh thì completed, chưa thì theo job mới nhất."""
    book = get_book(session, book_id)
    if book is not None and book.page_images_count and book.page_images_count > 0:
        return {
            "book_id": book_id,
            "completed": True,
            "page_count": book.page_images_count,
            "rendered_at": book.page_images_rendered_at,
        }
    job = get_latest_job_for_book(session, book_id)
    return {
        "book_id": book_id,
        "completed": False,
        "status": job.status if job else "unknown",
        "error": job.error_message if job else None,
        "processed_pages": (job.processed_pages or 0) if job else 0,
        "total_pages": (job.total_pages or 0) if job else 0,
    }
