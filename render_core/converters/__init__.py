"""Converter PDF -> ảnh trang: poppler (mặc định), pymupdf. Chọn backend qua get_converter()."""
from __future__ import annotations

from render_core.converters.base import DocumentConverter
from render_core.converters.poppler import PopplerConverter
from render_core.domain.models import RenderSettings, load_render_settings


def get_converter(backend: str | None = None, settings: RenderSettings | None = None) -> DocumentConverter:
    settings = settings or load_render_settings()
    backend = (backend or settings.backend).lower()
    if backend == "poppler":
        return PopplerConverter(settings)
    if backend == "pymupdf":
        # import muộn: PyMuPDF chỉ cần khi chọn backend này
        from render_core.converters.pymupdf import PyMuPDFConverter
        return PyMuPDFConverter(settings)
    raise ValueError(f"Unknown converter backend: {backend}")


__all__ = ["DocumentConverter", "PopplerConverter", "get_converter"]
