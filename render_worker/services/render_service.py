"""
Render ảnh trang sách từ PDF: một job = một lần render toàn bộ trang của một book.

Luồng process(job_id), tuần tự:
  1. Đọc book (phải có pdf_url).
  2. Claim job: pending -> processing (UPDATE có điều kiện), reset tiến độ.
  3. pdf_url -> object key, tải PDF về thư mục tạm của job.
  4. Đếm số trang, render từng trang 1..N (ghi processed_pages = N-1 trước khi render trang N).
  5. Quét lại thư mục tạm: tập trang canonical phải đúng bằng {1..N}, thiếu trang nào thì fail và liệt kê.
  6. Upload từng trang lên MinIO, xoá file local sau khi upload.
  7. Cùng một transaction: ghi books.page_images_* và job completed.
Lỗi ở bất kỳ bước nào: job failed + error_message, books không bị đụng tới.
"""
from __future__ import annotations
import shutil
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from render_core.converters import DocumentConverter, get_converter
from render_core.domain.models import RenderOutcome
from render_core.errors import IncompleteRenderError, InputError, RenderError
from render_core.keys import (
    PAGE_IMAGE_CONTENT_TYPE,
    build_book_assets_prefix,
    build_page_image_key,
    get_object_key_from_public_url,
)
from render_core.pipeline.pages import find_missing_pages, scan_canonical_pages
from render_worker.core.config import settings
from render_worker.core.logging import get_logger
from render_worker.db.models import BookRenderJob, JobStatus, utcnow
from render_worker.db.session import get_session, get_session_factory
from render_worker.services.books_service import get_book, mark_book_rendered
from render_worker.services.jobs_service import (
    ensure_job_for_book,
    get_job,
    list_jobs_by_status,
    update_job,
)
from render_worker.services.storage_service import ObjectStorage

logger = get_logger(__name__)


class JobNotClaimable(Exception):
    """Job không còn ở trạng thái pending (worker khác đã nhận)."""


class BookRenderProcessor:
    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        storage: ObjectStorage | None = None,
        converter: DocumentConverter | None = None,
        keep_temp: bool | None = None,
        temp_root: str | Path | None = None,
        public_base_url: str | None = None,
        bucket: str | None = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.bucket = bucket or settings.s3_bucket
        self.storage = storage or ObjectStorage(bucket=self.bucket)
        self.converter = converter or get_converter()
        self.keep_temp = settings.render_keep_temp if keep_temp is None else keep_temp
        self.temp_root = temp_root if temp_root is not None else settings.render_tmp_dir
        self.public_base_url = public_base_url if public_base_url is not None else settings.s3_public_base_url

    # ---- entry points -------------------------------------------------

    def process_book(self, book_id: int) -> RenderOutcome | None:
        """Đảm bảo book có job (tạo nếu cần) rồi xử lý job đó."""
        with get_session(self.session_factory) as session:
            if get_book(session, book_id) is None:
                raise InputError(f"Book {book_id} not found")
            job_id = ensure_job_for_book(session, book_id)
        return self.process(job_id)

    def process_pending(self, limit: int = 1) -> list[RenderOutcome]:
        """Lấy tối đa `limit` job pending cũ nhất và xử lý lần lượt; job lỗi không dừng cả lô."""
        with get_session(self.session_factory) as session:
            job_ids = [job.id for job in list_jobs_by_status(session, JobStatus.PENDING.value, limit=limit)]
        if not job_ids:
            logger.info("[RENDER] Không có job pending nào.")
            return []
        logger.info(f"[RENDER] Xử lý {len(job_ids)} job pending: {job_ids}")
        outcomes = []
        for job_id in job_ids:
            outcome = self.process(job_id)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    def process(self, job_id: int) -> RenderOutcome | None:
        """Xử lý một job. Lỗi của job được ghi vào job (failed), không raise ra ngoài."""
        with get_session(self.session_factory) as session:
            job = get_job(session, job_id)
            if job is None:
                logger.warning(f"[RENDER] Job not found: job_id={job_id}")
                return None
            book_id = job.book_id
            status = job.status
        if status != JobStatus.PENDING.value:
            logger.info(f"[RENDER] Job not pending, skip: job_id={job_id}, status={status}")
            return RenderOutcome(job_id=job_id, book_id=book_id, status=status)

        logger.info(f"[RENDER] Job started: job_id={job_id}, book_id={book_id}")
        t0 = time.perf_counter()
        try:
            total_pages = self._run(job_id, book_id)
        except JobNotClaimable:
            logger.info(f"[RENDER] Job đã được worker khác nhận, bỏ qua: job_id={job_id}")
            return RenderOutcome(job_id=job_id, book_id=book_id, status=JobStatus.PROCESSING.value)
        except Exception as e:
            logger.exception(f"[RENDER] Job failed: job_id={job_id}, book_id={book_id}, error={e!r}")
            message = str(e) or e.__class__.__name__
            try:
                self._mark_failed(job_id, message)
            except Exception as mark_err:
                # DB lỗi khi ghi failed: log lại, job giữ trạng thái cũ, lô vẫn chạy tiếp
                logger.exception(f"[RENDER] Không ghi được trạng thái failed: job_id={job_id}, error={mark_err!r}")
            return RenderOutcome(job_id=job_id, book_id=book_id, status=JobStatus.FAILED.value, error=message)
        logger.info(
            f"[RENDER] ✅ Job completed: job_id={job_id}, book_id={book_id}, "
            f"pages={total_pages}, time={time.perf_counter() - t0:.2f}s"
        )
        return RenderOutcome(
            job_id=job_id, book_id=book_id, status=JobStatus.COMPLETED.value, total_pages=total_pages
        )

    # ---- steps --------------------------------------------------------

    def _run(self, job_id: int, book_id: int) -> int:
        with get_session(self.session_factory) as session:
            book = get_book(session, book_id)
            pdf_url = book.pdf_url if book is not None else None
        if not (pdf_url or "").strip():
            raise InputError("Book record missing or PDF URL unavailable.")

        self._claim(job_id)

        pdf_key = get_object_key_from_public_url(pdf_url, self.public_base_url, self.bucket)
        if not pdf_key:
            raise InputError(f"Unable to derive object key for PDF: {pdf_url}")

        with self._workspace(book_id) as workdir:
            pdf_path = workdir / "book.pdf"
            size = self.storage.download_to_file(pdf_key, pdf_path, bucket=self.bucket)
            logger.info(f"[RENDER] Bước 1/4 - Đã tải PDF: key={pdf_key}, size={size} bytes")

            total_pages = self.converter.discover_page_count(pdf_path)
            if not total_pages or total_pages <= 0:
                raise InputError("Could not determine page count from PDF")
            logger.info(f"[RENDER] PDF có {total_pages} trang (converter={self.converter.name})")

            pages_dir = workdir / "pages"
            pages_dir.mkdir()
            self._render_pages(job_id, pdf_path, pages_dir, total_pages)
            pages = self._validate(pages_dir, total_pages)
            self._upload_pages(book_id, pages, total_pages)
            self._finalize(job_id, book_id, total_pages)
        return total_pages

    def _claim(self, job_id: int) -> None:
        """pending -> processing. UPDATE có điều kiện để hai worker không cùng nhận một job."""
        with get_session(self.session_factory) as session:
            stmt = (
                update(BookRenderJob)
                .where(BookRenderJob.id == job_id, BookRenderJob.status == JobStatus.PENDING.value)
                .values(
                    status=JobStatus.PROCESSING.value,
                    started_at=utcnow(),
                    processed_pages=0,
                    total_pages=None,
                    finished_at=None,
                    error_message=None,
                )
            )
            result = session.execute(stmt, execution_options={"synchronize_session": False})
            if result.rowcount != 1:
                raise JobNotClaimable(job_id)

    @contextmanager
    def _workspace(self, book_id: int) -> Iterator[Path]:
        """Thư mục tạm riêng của job; luôn xoá khi kết thúc trừ khi keep_temp."""
        if self.temp_root:
            Path(self.temp_root).mkdir(parents=True, exist_ok=True)
        workdir = Path(tempfile.mkdtemp(prefix=f"book-{book_id}-", dir=self.temp_root or None))
        try:
            yield workdir
        finally:
            if self.keep_temp:
                logger.info(f"[RENDER] Giữ lại thư mục tạm để kiểm tra: {workdir}")
            else:
                shutil.rmtree(workdir, ignore_errors=True)

    def _set_progress(self, job_id: int, processed_pages: int, total_pages: int) -> None:
        with get_session(self.session_factory) as session:
            update_job(session, job_id, processed_pages=processed_pages, total_pages=total_pages)

    def _render_pages(self, job_id: int, pdf_path: Path, pages_dir: Path, total_pages: int) -> None:
        logger.info(f"[RENDER] Bước 2/4 - Render {total_pages} trang")
        for page in range(1, total_pages + 1):
            # Tiến độ = "sắp render trang N"
            self._set_progress(job_id, page - 1, total_pages)
            try:
                self.converter.render_page(pdf_path, page, pages_dir)
            except Exception as e:
                logger.error(f"[RENDER] ✗ Lỗi render trang {page}/{total_pages}: {e}")
                raise RenderError(f"Rendering failed at page {page}/{total_pages}: {e}") from e
            logger.debug(f"[RENDER] ✓ Đã render trang {page}/{total_pages}")

    def _validate(self, pages_dir: Path, total_pages: int) -> dict[int, Path]:
        """Danh sách file quét lại từ đĩa là nguồn sự thật, không tin bộ đếm trong vòng lặp render."""
        pages = scan_canonical_pages(pages_dir)
        logger.info(f"[RENDER] Bước 3/4 - Tìm thấy {len(pages)}/{total_pages} ảnh trang")
        missing = find_missing_pages(pages, total_pages)
        if missing:
            raise IncompleteRenderError(total_pages, len(pages), missing)
        extra = sorted(n for n in pages if n > total_pages or n < 1)
        if extra:
            raise RenderError(
                f"Unexpected page images outside 1..{total_pages}: {', '.join(str(n) for n in extra)}"
            )
        return pages

    def _upload_pages(self, book_id: int, pages: dict[int, Path], total_pages: int) -> None:
        """
        Upload từng trang rồi xoá file local.

        Không ghi processed_pages sau mỗi lần upload: lúc này tiến độ đã là total-1 từ vòng render,
        ghi lại 1..total sẽ làm tiến độ giảm. Giá trị total chỉ được ghi cùng transaction với
        completed (xem _finalize), nên processed_pages == total_pages đồng nghĩa job đã xong.
        """
        logger.info(f"[RENDER] Bước 4/4 - Upload {total_pages} trang lên bucket={self.bucket}")
        for page in sorted(pages):
            path = pages[page]
            key = build_page_image_key(book_id, page)
            size = self.storage.put_file(key, path, PAGE_IMAGE_CONTENT_TYPE, bucket=self.bucket)
            logger.info(f"[RENDER] ✓ Đã upload trang {page}/{total_pages}: {size} bytes -> {key}")
            path.unlink()

    def _finalize(self, job_id: int, book_id: int, total_pages: int) -> None:
        now = utcnow()
        with get_session(self.session_factory) as session:
            mark_book_rendered(session, book_id, build_book_assets_prefix(book_id), total_pages, now)
            update_job(
                session,
                job_id,
                status=JobStatus.COMPLETED.value,
                processed_pages=total_pages,
                total_pages=total_pages,
                finished_at=now,
                error_message=None,
            )

    def _mark_failed(self, job_id: int, message: str) -> None:
        with get_session(self.session_factory) as session:
            update_job(
                session,
                job_id,
                status=JobStatus.FAILED.value,
                error_message=message,
                finished_at=utcnow(),
            )
