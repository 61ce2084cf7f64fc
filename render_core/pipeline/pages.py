"""Quy ước tên file trang canonical: page-0001.jpg ... (padding 4 chữ số) để sắp xếp và đối chiếu tất định."""
from __future__ import annotations
import re
from pathlib import Path

CANONICAL_PAGE_RE = re.compile(r"^page-(\d{4})\.jpg$")
PAGE_FILE_STEM = "page"
# pdftocairo pad theo số chữ số của tổng số trang; PDF < 10 trang cho ra page-1.jpg
PROBE_PADDING_WIDTHS = (1, 2, 3, 4)


def canonical_page_name(page_number: int) -> str:
    return f"{PAGE_FILE_STEM}-{page_number:04d}.jpg"


def candidate_page_paths(output_dir: Path, page_number: int) -> list[Path]:
    return [
        output_dir / f"{PAGE_FILE_STEM}-{str(page_number).zfill(width)}.jpg"
        for width in PROBE_PADDING_WIDTHS
    ]


def scan_canonical_pages(directory: Path) -> dict[int, Path]:
    """Quét thư mục, trả về {số trang: path} cho các file canonical không rỗng."""
    found: dict[int, Path] = {}
    for path in sorted(Path(directory).iterdir()):
        m = CANONICAL_PAGE_RE.match(path.name)
        if not m or not path.is_file():
            continue
        if path.stat().st_size == 0:
            continue
        found[int(m.group(1))] = path
    return found


def find_missing_pages(found_pages, total_pages: int) -> list[int]:
    present = set(found_pages)
    return [n for n in range(1, total_pages + 1) if n not in present]
