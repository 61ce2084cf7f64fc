"""Tests cho job store và Producer (ensure_job_for_book)."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from render_worker.db.models import BookRenderJob, JobStatus
from render_worker.services import jobs_service


@pytest.fixture
def session(session_factory, make_book):
    make_book(1)
    make_book(2)
    with session_factory() as s:
        yield s


def test_create_job_is_pending(session):
    job = jobs_service.create_job(session, 1)
    session.commit()
    assert job.id is not None
    assert job.status == "pending"
    assert job.processed_pages == 0
    assert job.total_pages is None
    assert job.created_at is not None


def test_ensure_job_is_idempotent(session):
    first = jobs_service.ensure_job_for_book(session, 1)
    second = jobs_service.ensure_job_for_book(session, 1)
    session.commit()
    assert first == second
    assert session.query(BookRenderJob).filter_by(book_id=1).count() == 1


def test_ensure_job_reuses_processing_job(session):
    job = jobs_service.create_job(session, 1)
    jobs_service.update_job(session, job.id, status=JobStatus.PROCESSING)
    session.commit()

    assert jobs_service.ensure_job_for_book(session, 1) == job.id
    assert session.query(BookRenderJob).count() == 1


@pytest.mark.parametrize("terminal", ["failed", "completed"])
def test_ensure_job_creates_new_after_terminal(session, terminal):
    old = jobs_service.create_job(session, 1)
    jobs_service.update_job(session, old.id, status=terminal)
    session.commit()

    new_id = jobs_service.ensure_job_for_book(session, 1)
    session.commit()
    assert new_id != old.id
    assert jobs_service.get_job(session, new_id).status == "pending"
    assert jobs_service.get_latest_job_for_book(session, 1).id == new_id


def test_ensure_job_is_per_book(session):
    a = jobs_service.ensure_job_for_book(session, 1)
    b = jobs_service.ensure_job_for_book(session, 2)
    assert a != b


def test_second_active_job_violates_unique_index(session):
    jobs_service.create_job(session, 1)
    session.commit()
    with pytest.raises(IntegrityError):
        jobs_service.create_job(session, 1)
    session.rollback()


def test_terminal_jobs_do_not_block_new_rows(session):
    for _ in range(3):
        job = jobs_service.create_job(session, 1)
        jobs_service.update_job(session, job.id, status="failed")
    session.commit()
    assert session.query(BookRenderJob).filter_by(book_id=1).count() == 3


def test_list_jobs_by_status_oldest_first_with_limit(session):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ids = []
    for i, book_id in enumerate([2, 1]):
        job = BookRenderJob(book_id=book_id, status="pending", created_at=base + timedelta(minutes=i))
        session.add(job)
        session.flush()
        ids.append(job.id)
    session.add(BookRenderJob(book_id=1, status="failed", created_at=base - timedelta(days=1)))
    session.commit()

    jobs = jobs_service.list_jobs_by_status(session, "pending", limit=5)
    assert [j.id for j in jobs] == ids
    assert [j.id for j in jobs_service.list_jobs_by_status(session, "pending", limit=1)] == ids[:1]
    newest = jobs_service.list_jobs_by_status(session, "pending", limit=1, oldest_first=False)
    assert [j.id for j in newest] == ids[1:]


def test_update_job_ignores_unknown_fields(session):
    job = jobs_service.create_job(session, 1)
    jobs_service.update_job(session, job.id, processed_pages=3, total_pages=9, book_id=2, bogus=1)
    session.commit()
    session.expire_all()
    stored = jobs_service.get_job(session, job.id)
    assert (stored.processed_pages, stored.total_pages, stored.book_id) == (3, 9, 1)


def test_fail_stale_jobs(session):
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    stale = BookRenderJob(book_id=1, status="processing", started_at=now - timedelta(hours=2))
    fresh = BookRenderJob(book_id=2, status="processing", started_at=now - timedelta(minutes=5))
    session.add_all([stale, fresh])
    session.commit()

    failed = jobs_service.fail_stale_jobs(session, timedelta(minutes=60), now=now)
    session.commit()
    session.expire_all()

    assert failed == [stale.id]
    stored = jobs_service.get_job(session, stale.id)
    assert stored.status == "failed"
    assert "60 minutes" in stored.error_message
    assert jobs_service.get_job(session, fresh.id).status == "processing"
    # book 1 có thể nhận job mới sau khi job kẹt bị đánh dấu failed
    assert jobs_service.ensure_job_for_book(session, 1) != stale.id


def test_ensure_job_falls_back_to_concurrently_created_job(session, session_factory, monkeypatch):
    # Producer A đã đọc "chưa có job" thì producer B chèn và commit job pending trước
    with session_factory() as other:
        winner = jobs_service.create_job(other, 1)
        other.commit()
        winner_id = winner.id
    monkeypatch.setattr(jobs_service, "get_latest_job_for_book", lambda s, book_id: None)

    job_id = jobs_service.ensure_job_for_book(session, 1)
    session.commit()

    assert job_id == winner_id
    with session_factory() as check:
        active = check.query(BookRenderJob).filter(
            BookRenderJob.book_id == 1,
            BookRenderJob.status.in_(["pending", "processing"]),
        ).all()
    assert [j.id for j in active] == [winner_id]


def test_ensure_job_reraises_when_no_active_job_to_reuse(session, monkeypatch):
    monkeypatch.setattr(jobs_service, "get_latest_job_for_book", lambda s, book_id: None)
    monkeypatch.setattr(jobs_service, "get_active_job_for_book", lambda s, book_id: None)

    def _conflict(s, book_id):
        raise IntegrityError("INSERT INTO book_render_jobs", {}, Exception("unique"))

    monkeypatch.setattr(jobs_service, "create_job", _conflict)
    with pytest.raises(IntegrityError):
        jobs_service.ensure_job_for_book(session, 1)
