#!/usr/bin/env python3
"""
Render ảnh trang sách (PDF -> JPEG trên MinIO) từ dòng lệnh.

Cách chạy (cần DB + MinIO đang chạy, poppler-utils nếu dùng backend poppler):
  render-book-images --bookId=123          # render một book, tạo job nếu chưa có job đang chạy
  render-book-images --limit=5             # xử lý tối đa 5 job pending cũ nhất
  render-book-images --limit=5 --fail-stale-after=60 --keep-temp
"""
from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from render_core.converters import get_converter
from render_worker.core.logging import get_logger
from render_worker.db.models import JobStatus
from render_worker.db.session import get_session
from render_worker.services.jobs_service import fail_stale_jobs
from render_worker.services.render_service import BookRenderProcessor

logger = get_logger("render_worker.cli")


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="render-book-images",
        description="Render PDF pages of books to JPEG images in object storage.",
    )
    parser.add_argument(
        "--bookId", "--book-id",
        dest="book_id",
        type=int,
        default=None,
        help="Process a specific book (creates a job if needed)",
    )
    parser.add_argument(
        "--limit",
        type=_positive_int,
        default=1,
        help="Maximum number of pending jobs to process (default: 1)",
    )
    parser.add_argument(
        "--keep-temp",
        action="store_true",
        default=None,
        help="Keep the per-job temp directory for inspection (default: RENDER_KEEP_TEMP)",
    )
    parser.add_argument(
        "--backend",
        choices=["poppler", "pymupdf"],
        default=None,
        help="Rasterizer backend (default: renderer.backend in system_config.yml)",
    )
    parser.add_argument(
        "--fail-stale-after",
        dest="fail_stale_after",
        type=_positive_int,
        default=None,
        metavar="MINUTES",
        help="Before processing, mark jobs stuck in processing longer than MINUTES as failed",
    )
    return parser


def main(argv: list[str] | None = None, processor: BookRenderProcessor | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if processor is None:
            processor = BookRenderProcessor(
                converter=get_converter(args.backend),
                keep_temp=args.keep_temp,
            )
        if args.fail_stale_after:
            with get_session(processor.session_factory) as session:
                stale = fail_stale_jobs(session, timedelta(minutes=args.fail_stale_after))
            logger.info(f"[CLI] Stale jobs marked failed: {stale or 'none'}")

        if args.book_id is not None:
            outcome = processor.process_book(args.book_id)
            if outcome is None:
                logger.error(f"[CLI] Không lấy được job cho book {args.book_id}")
                return 1
            if outcome.status == JobStatus.FAILED.value:
                logger.error(f"[CLI] Job {outcome.job_id} failed: {outcome.error}")
                return 1
            logger.info(f"[CLI] Job {outcome.job_id} for book {outcome.book_id}: {outcome.status}")
            return 0

        outcomes = processor.process_pending(limit=args.limit)
        failed = [o for o in outcomes if o.status == JobStatus.FAILED.value]
        for o in failed:
            logger.error(f"[CLI] Job {o.job_id} failed: {o.error}")
        logger.info(f"[CLI] Đã xử lý {len(outcomes)} job, {len(failed)} job lỗi")
        return 0
    except Exception as e:
        logger.exception(f"[CLI] Dừng chạy render do lỗi: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
