"""Các lỗi của pipeline render. Message của lỗi được ghi nguyên văn vào book_render_jobs.error_message."""
from __future__ import annotations


class RenderError(Exception):
    """Lỗi gốc: mọi lỗi làm job render thất bại."""


class InputError(RenderError):
    """Đầu vào không dùng được: thiếu pdf_url, không suy ra được object key, số trang = 0."""


class ToolInvocationError(RenderError):
    """Công cụ ngoài (pdfinfo/pdftocairo/PyMuPDF) lỗi hoặc không sinh ra file trang."""

    def __init__(self, message: str, page_number: int | None = None, output: str | None = None):
        super().__init__(message)
        self.page_number = page_number
        self.output = output


class IncompleteRenderError(RenderError):
    """Số file trang render được khác tổng số trang. Không bao giờ được coi là thành công một phần."""

    def __init__(self, total_pages: int, found: int, missing_pages: list[int]):
        self.total_pages = total_pages
        self.found = found
        self.missing_pages = list(missing_pages)
        missing = ", ".join(str(p) for p in self.missing_pages)
        super().__init__(
            f"Incomplete rendering: expected {total_pages} pages but found {found} images. "
            f"Missing pages: {missing}"
        )
