"""Converter thuần Python: PyMuPDF rasterize trang, Pillow encode JPEG. Không cần poppler-utils."""
from __future__ import annotations
from pathlib import Path

import fitz
from PIL import Image

from render_core.converters.base import DocumentConverter
from render_core.errors import InputError, ToolInvocationError
from render_core.pipeline.pages import canonical_page_name


class PyMuPDFConverter(DocumentConverter):
    name = "pymupdf"

    def discover_page_count(self, pdf_path: Path) -> int:
        try:
            doc = fitz.open(str(pdf_path))
        except Exception as e:
            raise InputError(f"Could not determine page count from PDF: {e}") from e
        try:
            page_count = doc.page_count
        finally:
            doc.close()
        if page_count <= 0:
            raise InputError("Could not determine page count from PDF")
        return page_count

    def render_page(self, pdf_path: Path, page_number: int, output_dir: Path) -> Path:
        target = Path(output_dir) / canonical_page_name(page_number)
        try:
            doc = fitz.open(str(pdf_path))
        except Exception as e:
            raise ToolInvocationError(f"Cannot open PDF for page {page_number}: {e}", page_number=page_number) from e
        try:
            if not 1 <= page_number <= doc.page_count:
                raise ToolInvocationError(
                    f"Page {page_number} out of range (document has {doc.page_count} pages)",
                    page_number=page_number,
                )
            try:
                pix = doc[page_number - 1].get_pixmap(dpi=self.settings.dpi, alpha=False)
                img = Image.frombytes("RGB", [pix.width, pix.height], pix.samples)
                img.save(target, "JPEG", quality=self.settings.jpeg_quality)
            except Exception as e:
                raise ToolInvocationError(
                    f"PyMuPDF failed to render page {page_number}: {e}", page_number=page_number
                ) from e
        finally:
            doc.close()
        return target
