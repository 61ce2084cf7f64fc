"""
Converter dùng poppler-utils:
- pdfinfo: đọc số trang ("Pages:   12").
- pdftocairo -jpeg: render từng trang (-f N -l N) để báo tiến độ theo trang và dừng ngay ở trang lỗi.
"""
from __future__ import annotations
import re
import subprocess
from pathlib import Path

from render_core.converters.base import DocumentConverter
from render_core.errors import InputError, ToolInvocationError
from render_core.pipeline.pages import PAGE_FILE_STEM, canonical_page_name, candidate_page_paths

_PAGES_RE = re.compile(r"^Pages:\s+(\d+)", re.MULTILINE)


def parse_page_count(pdfinfo_output: str) -> int:
    m = _PAGES_RE.search(pdfinfo_output or "")
    if not m:
        raise InputError("Could not determine page count from PDF")
    return int(m.group(1))


class PopplerConverter(DocumentConverter):
    name = "poppler"

    def _run(self, args: list[str], page_number: int | None = None) -> subprocess.CompletedProcess:
        where = f" for page {page_number}" if page_number is not None else ""
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.settings.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolInvocationError(
                f"{args[0]} not found. Please install poppler-utils", page_number=page_number
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ToolInvocationError(
                f"{args[0]} timed out after {self.settings.timeout_seconds}s{where}",
                page_number=page_number,
            ) from e
        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise ToolInvocationError(
                f"{args[0]} exited with code {result.returncode}{where}: {output}",
                page_number=page_number,
                output=output,
            )
        return result

    def discover_page_count(self, pdf_path: Path) -> int:
        result = self._run([self.settings.pdfinfo, str(pdf_path)])
        return parse_page_count(result.stdout)

    def render_page(self, pdf_path: Path, page_number: int, output_dir: Path) -> Path:
        output_dir = Path(output_dir)
        self._run(
            [
                self.settings.pdftocairo,
                "-jpeg",
                "-r", str(self.settings.dpi),
                "-f", str(page_number),
                "-l", str(page_number),
                "-jpegopt", f"quality={self.settings.jpeg_quality}",
                str(pdf_path),
                str(output_dir / PAGE_FILE_STEM),
            ],
            page_number=page_number,
        )
        # Độ rộng padding phụ thuộc tổng số trang của PDF (page-1.jpg, page-01.jpg, page-001.jpg...)
        generated = next((p for p in candidate_page_paths(output_dir, page_number) if p.exists()), None)
        if generated is None:
            raise ToolInvocationError(
                f"Generated file not found for page {page_number} "
                f"(tried 1, 2, 3 and 4-digit padding formats)",
                page_number=page_number,
            )
        target = output_dir / canonical_page_name(page_number)
        if generated != target:
            generated.replace(target)
        return target
