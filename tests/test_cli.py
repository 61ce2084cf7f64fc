"""Tests cho CLI render-book-images (processor được inject, không cần DB/MinIO thật)."""
from datetime import datetime, timedelta, timezone

import pytest

from render_worker import cli
from render_worker.db.models import BookRenderJob
from render_worker.services import jobs_service
from render_worker.services.render_service import BookRenderProcessor
from tests.fakes import BUCKET, PUBLIC_BASE_URL, FakeConverter


@pytest.fixture
def make_processor(session_factory, storage, tmp_path):
    def _make(converter):
        return BookRenderProcessor(
            session_factory=session_factory,
            storage=storage,
            converter=converter,
            keep_temp=False,
            temp_root=tmp_path / "work",
            public_base_url=PUBLIC_BASE_URL,
            bucket=BUCKET,
        )
    return _make


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--help"])
    assert exc_info.value.code == 0
    assert "--bookId" in capsys.readouterr().out


def test_invalid_limit_is_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--limit=0"])
    assert exc_info.value.code == 2


def test_book_id_success(make_book, make_processor):
    make_book(5)
    assert cli.main(["--bookId=5"], processor=make_processor(FakeConverter(2))) == 0


def test_book_id_failure_exits_non_zero(make_book, make_processor):
    make_book(5)
    assert cli.main(["--book-id", "5"], processor=make_processor(FakeConverter(2, fail_on={1}))) == 1


def test_unknown_book_exits_non_zero(make_processor):
    assert cli.main(["--bookId=404"], processor=make_processor(FakeConverter(1))) == 1


def test_batch_failures_do_not_abort(make_book, make_processor, session_factory):
    make_book(1)
    make_book(2)
    with session_factory() as session:
        jobs_service.create_job(session, 1)
        jobs_service.create_job(session, 2)
        session.commit()

    assert cli.main(["--limit=2"], processor=make_processor(FakeConverter(1, fail_on={1}))) == 0
    with session_factory() as session:
        statuses = sorted(j.status for j in session.query(BookRenderJob).all())
    assert statuses == ["failed", "failed"]


def test_fail_stale_after(make_book, make_processor, session_factory):
    make_book(1)
    with session_factory() as session:
        session.add(BookRenderJob(
            book_id=1,
            status="processing",
            started_at=datetime.now(timezone.utc) - timedelta(hours=3),
        ))
        session.commit()

    assert cli.main(["--fail-stale-after=30", "--limit=1"], processor=make_processor(FakeConverter(1))) == 0
    with session_factory() as session:
        job = session.query(BookRenderJob).one()
    assert job.status == "failed"
