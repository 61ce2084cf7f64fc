"""Tests cho API kích hoạt render / xem trạng thái (TestClient, SQLite, Celery giả)."""
import pytest
from fastapi.testclient import TestClient

from render_worker.api import routes_render
from render_worker.api.main import create_app
from render_worker.services import jobs_service


@pytest.fixture
def dispatched(monkeypatch):
    calls = []
    monkeypatch.setattr(routes_render, "dispatch_render", lambda book_id: calls.append(book_id))
    return calls


@pytest.fixture
def client(session_factory):
    app = create_app(use_lifespan=False)

    def _get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        finally:
            session.close()

    app.dependency_overrides[routes_render.get_db] = _get_db
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_trigger_creates_job_and_dispatches(client, make_book, dispatched):
    make_book(3)
    body = client.post("/v1/render/books/3").json()
    assert body["book_id"] == 3
    assert body["status"] == "pending"
    assert body["worker_queued"] is True
    assert dispatched == [3]

    again = client.post("/v1/render/books/3").json()
    assert again["job_id"] == body["job_id"]


def test_trigger_unknown_book(client, dispatched):
    assert client.post("/v1/render/books/99").status_code == 404
    assert dispatched == []


def test_trigger_dispatch_failure_keeps_job(client, make_book, monkeypatch):
    make_book(3)

    def broken(book_id):
        raise ConnectionError("redis down")

    monkeypatch.setattr(routes_render, "dispatch_render", broken)
    resp = client.post("/v1/render/books/3")
    assert resp.status_code == 200
    assert resp.json()["worker_queued"] is False
    assert client.get(f"/v1/render/jobs/{resp.json()['job_id']}").json()["status"] == "pending"


def test_status_for_book_without_jobs(client, make_book):
    make_book(3)
    body = client.get("/v1/render/books/3").json()
    assert body["completed"] is False
    assert body["status"] == "unknown"


def test_status_reports_progress(client, make_book, session_factory):
    make_book(3)
    with session_factory() as session:
        job = jobs_service.create_job(session, 3)
        jobs_service.update_job(session, job.id, status="processing", processed_pages=4, total_pages=10)
        session.commit()
    body = client.get("/v1/render/books/3").json()
    assert (body["status"], body["processed_pages"], body["total_pages"]) == ("processing", 4, 10)


def test_job_status_not_found(client):
    assert client.get("/v1/render/jobs/123").status_code == 404
