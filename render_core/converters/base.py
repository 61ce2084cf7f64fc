"""Interface chung cho converter PDF -> ảnh trang. Worker chỉ phụ thuộc vào hai thao tác này."""
from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path

from render_core.domain.models import RenderSettings


class DocumentConverter(ABC):
    name: str = "base"

    def __init__(self, settings: RenderSettings | None = None):
        self.settings = settings or RenderSettings()

    @abstractmethod
    def discover_page_count(self, pdf_path: Path) -> int:
        """Trả về số trang của PDF; lỗi nếu không xác định được."""

    @abstractmethod
    def render_page(self, pdf_path: Path, page_number: int, output_dir: Path) -> Path:
        """Render đúng một trang (1-based) thành file canonical page-NNNN.jpg trong output_dir."""
