"""Service job render — SQLAlchemy 2.x sync (Session). Caller quản lý transaction (get_session)."""
from __future__ import annotations
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from render_worker.core.logging import get_logger
from render_worker.db.models import ACTIVE_STATUSES, BookRenderJob, JobStatus, utcnow

logger = get_logger(__name__)

ALLOWED_UPDATE_FIELDS = frozenset({
    "status",
    "processed_pages",
    "total_pages",
    "started_at",
    "finished_at",
    "error_message",
})


def create_job(session: Session, book_id: int) -> BookRenderJob:
    job = BookRenderJob(book_id=book_id, status=JobStatus.PENDING.value, processed_pages=0)
    session.add(job)
    session.flush()
    logger.info(f"[DB] INSERT book_render_jobs: job_id={job.id}, book_id={book_id}, status=pending")
    return job


def get_job(session: Session, job_id: int) -> BookRenderJob | None:
    return session.get(BookRenderJob, job_id)


def get_latest_job_for_book(session: Session, book_id: int) -> BookRenderJob | None:
    stmt = (
        select(BookRenderJob)
        .where(BookRenderJob.book_id == book_id)
        .order_by(BookRenderJob.created_at.desc(), BookRenderJob.id.desc())
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


def get_active_job_for_book(session: Session, book_id: int) -> BookRenderJob | None:
    stmt = select(BookRenderJob).where(
        BookRenderJob.book_id == book_id,
        BookRenderJob.status.in_(ACTIVE_STATUSES),
    )
    return session.execute(stmt).scalars().first()


def list_jobs_by_status(
    session: Session,
    status: str,
    limit: int = 1,
    oldest_first: bool = True,
) -> list[BookRenderJob]:
    if oldest_first:
        order = (BookRenderJob.created_at.asc(), BookRenderJob.id.asc())
    else:
        order = (BookRenderJob.created_at.desc(), BookRenderJob.id.desc())
    stmt = select(BookRenderJob).where(BookRenderJob.status == status).order_by(*order).limit(limit)
    return list(session.execute(stmt).scalars().all())


def update_job(session: Session, job_id: int, **fields) -> None:
    if not fields:
        return
    allowed = {k: v for k, v in fields.items() if k in ALLOWED_UPDATE_FIELDS}
    if not allowed:
        return
    if isinstance(allowed.get("status"), JobStatus):
        allowed["status"] = allowed["status"].value
    logger.debug(f"[DB] update_job: job_id={job_id}, fields={list(allowed.keys())}")
    stmt = update(BookRenderJob).where(BookRenderJob.id == job_id).values(**allowed)
    session.execute(stmt, execution_options={"synchronize_session": "fetch"})


def ensure_job_for_book(session: Session, book_id: int) -> int:
    """
    Đảm bảo book có đúng một job đang hoạt động (pending/processing) và trả về job_id.

    Job mới nhất chưa kết thúc thì dùng lại (gọi 2 lần liên tiếp trả cùng một id).
    Ngược lại tạo job pending mới; nếu producer khác vừa chèn trước (vi phạm
    uq_book_render_jobs_active_book) thì trả về job của producer đó.
    """
    latest = get_latest_job_for_book(session, book_id)
    if latest is not None and not latest.is_terminal:
        logger.info(f"[DB] Reuse active job: job_id={latest.id}, book_id={book_id}, status={latest.status}")
        return latest.id
    try:
        with session.begin_nested():
            job = create_job(session, book_id)
    except IntegrityError:
        active = get_active_job_for_book(session, book_id)
        if active is None:
            raise
        logger.info(f"[DB] Có job active được tạo song song, dùng lại job_id={active.id} cho book_id={book_id}")
        return active.id
    return job.id


def fail_stale_jobs(session: Session, older_than: timedelta, now: datetime | None = None) -> list[int]:
    """Đánh dấu failed các job processing đã chạy quá older_than (worker bị kill/crash). Trả về danh sách job_id."""
    now = now or utcnow()
    cutoff = now - older_than
    stmt = select(BookRenderJob).where(
        BookRenderJob.status == JobStatus.PROCESSING.value,
        BookRenderJob.started_at < cutoff,
    )
    stale = list(session.execute(stmt).scalars().all())
    minutes = int(older_than.total_seconds() // 60)
    for job in stale:
        job.status = JobStatus.FAILED.value
        job.finished_at = now
        job.error_message = f"Job stuck in processing for more than {minutes} minutes; marked as failed"
        logger.warning(f"[DB] Stale job marked failed: job_id={job.id}, book_id={job.book_id}, started_at={job.started_at}")
    session.flush()
    return [job.id for job in stale]
