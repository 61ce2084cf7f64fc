from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RenderTriggerResponse(BaseModel):
    book_id: int
    job_id: int
    status: str
    worker_queued: bool


class RenderStatusResponse(BaseModel):
    book_id: int
    completed: bool
    page_count: Optional[int] = None
    rendered_at: Optional[datetime] = None
    status: Optional[str] = None  # trạng thái job mới nhất khi chưa render xong
    error: Optional[str] = None
    processed_pages: Optional[int] = None
    total_pages: Optional[int] = None


class RenderJobResponse(BaseModel):
    id: int
    book_id: int
    status: str
    processed_pages: int
    total_pages: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: datetime
