"""Endpoint kích hoạt render ảnh trang sách và xem trạng thái (dashboard thủ thư gọi sau khi upload PDF)."""
from collections.abc import Generator

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from render_worker.api.schemas import RenderJobResponse, RenderStatusResponse, RenderTriggerResponse
from render_worker.core.logging import get_logger
from render_worker.db.session import get_session
from render_worker.services.books_service import get_book, get_render_status
from render_worker.services.jobs_service import ensure_job_for_book, get_job

logger = get_logger("render_worker.api")

router = APIRouter(prefix="/v1/render", tags=["render"])


def get_db() -> Generator[Session, None, None]:
    """Dependency FastAPI: mỗi request một session, tự commit/rollback và đóng."""
    with get_session() as session:
        yield session


def dispatch_render(book_id: int) -> None:
    from render_worker.worker import celery_app
    celery_app.send_task("render.run_book", args=[book_id])


@router.post("/books/{book_id}", response_model=RenderTriggerResponse)
def trigger_render(book_id: int, session: Session = Depends(get_db)):
    if get_book(session, book_id) is None:
        raise HTTPException(404, "Book not found")
    job_id = ensure_job_for_book(session, book_id)
    job = get_job(session, job_id)
    # Commit trước khi gửi task để worker thấy job pending
    session.commit()

    worker_queued = True
    try:
        dispatch_render(book_id)
        logger.info(f"[API] Đã gửi task render tới worker: book_id={book_id}, job_id={job_id}")
    except Exception as e:
        logger.warning(f"[API] Redis/Celery lỗi, không gửi được task render (job vẫn pending). Lỗi: {e}")
        worker_queued = False
    return RenderTriggerResponse(book_id=book_id, job_id=job_id, status=job.status, worker_queued=worker_queued)


@router.get("/books/{book_id}", response_model=RenderStatusResponse)
def render_status(book_id: int, session: Session = Depends(get_db)):
    return RenderStatusResponse(**get_render_status(session, book_id))


@router.get("/jobs/{job_id}", response_model=RenderJobResponse)
def job_status(job_id: int, session: Session = Depends(get_db)):
    job = get_job(session, job_id)
    if job is None:
        raise HTTPException(404, "job not found")
    return RenderJobResponse(**job.to_dict())
