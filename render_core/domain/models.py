from __future__ import annotations
import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

from render_core.config_loader import get_config, load_system_config

ConverterBackend = Literal["poppler", "pymupdf"]

DEFAULT_DPI = 150
DEFAULT_JPEG_QUALITY = 95


class RenderSettings(BaseModel):
    """Tham số rasterize: 150 DPI, JPEG quality 95 (đủ nét để đọc trên màn hình)."""
    backend: ConverterBackend = "poppler"
    dpi: int = Field(default=DEFAULT_DPI, gt=0)
    jpeg_quality: int = Field(default=DEFAULT_JPEG_QUALITY, ge=1, le=100)
    pdfinfo: str = "pdfinfo"
    pdftocairo: str = "pdftocairo"
    timeout_seconds: Optional[float] = None


def load_render_settings() -> RenderSettings:
    """Đọc renderer.* từ system_config.yml, env RENDER_BACKEND / RENDER_DPI / RENDER_JPEG_QUALITY ghi đè."""
    system_config, _ = load_system_config()
    values = dict(get_config(system_config, ["renderer"]) or {})
    values = {k: v for k, v in values.items() if v is not None}
    if os.getenv("RENDER_BACKEND"):
        values["backend"] = os.getenv("RENDER_BACKEND", "").strip().lower()
    if os.getenv("RENDER_DPI"):
        values["dpi"] = int(os.getenv("RENDER_DPI", ""))
    if os.getenv("RENDER_JPEG_QUALITY"):
        values["jpeg_quality"] = int(os.getenv("RENDER_JPEG_QUALITY", ""))
    return RenderSettings(**values)


class RenderOutcome(BaseModel):
    """Kết quả xử lý một job (trả về cho CLI / Celery task)."""
    job_id: int
    book_id: int
    status: str
    total_pages: Optional[int] = None
    error: Optional[str] = None
