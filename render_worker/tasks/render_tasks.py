"""
Celery tasks cho pipeline render trang sách.

- render.run_book: đảm bảo book có job (Producer) rồi render.
- render.run_pending: xử lý tối đa `limit` job pending cũ nhất.
- render.fail_stale_jobs: job kẹt ở processing quá RENDER_STALE_AFTER_MINUTES -> failed.

Không autoretry: job lỗi giữ nguyên failed, chạy lại bằng cách gọi run_book để tạo job mới.
"""
from __future__ import annotations
from datetime import timedelta

from celery import shared_task

from render_worker.core.config import settings
from render_worker.core.logging import get_logger
from render_worker.db.session import get_session
from render_worker.services.jobs_service import fail_stale_jobs
from render_worker.services.render_service import BookRenderProcessor

logger = get_logger(__name__)


@shared_task(name="render.run_book")
def run_book(book_id: int) -> dict | None:
    logger.info(f"[RENDER] Task run_book: book_id={book_id}")
    outcome = BookRenderProcessor().process_book(book_id)
    return outcome.model_dump() if outcome else None


@shared_task(name="render.run_pending")
def run_pending(limit: int = 1) -> list[dict]:
    logger.info(f"[RENDER] Task run_pending: limit={limit}")
    outcomes = BookRenderProcessor().process_pending(limit=limit)
    return [o.model_dump() for o in outcomes]


@shared_task(name="render.fail_stale_jobs")
def fail_stale_jobs_task(older_than_minutes: int | None = None) -> list[int]:
    minutes = older_than_minutes or settings.render_stale_after_minutes
    if not minutes:
        logger.info("[RENDER] Không kiểm tra job treo (RENDER_STALE_AFTER_MINUTES chưa cấu hình)")
        return []
    with get_session() as session:
        job_ids = fail_stale_jobs(session, timedelta(minutes=minutes))
    if job_ids:
        logger.warning(f"[RENDER] Đã đánh dấu failed {len(job_ids)} job treo: {job_ids}")
    return job_ids
