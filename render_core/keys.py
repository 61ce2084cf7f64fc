"""
Ánh xạ tất định (book_id, page) -> object key, và public URL -> object key.

Định dạng key phải giữ nguyên tuyệt đối vì reader cũ đọc ảnh trực tiếp theo key:
  book-pages/{book_id}/page-{NNNN}.jpg
"""
from __future__ import annotations
from urllib.parse import unquote, urlparse

BOOK_ASSETS_ROOT = "book-pages"
PAGE_IMAGE_CONTENT_TYPE = "image/jpeg"


def build_book_assets_prefix(book_id: int) -> str:
    return f"{BOOK_ASSETS_ROOT}/{book_id}"


def build_page_image_key(book_id: int, page_number: int) -> str:
    return f"{build_book_assets_prefix(book_id)}/page-{page_number:04d}.jpg"


def build_public_base_url(endpoint: str, use_ssl: bool = True, port: int | str | None = None) -> str:
    """http(s)://endpoint[:port]; bỏ port nếu trùng port mặc định của scheme."""
    if not endpoint:
        raise ValueError("MinIO endpoint is not configured.")
    scheme = "https" if use_ssl else "http"
    default_port = "443" if use_ssl else "80"
    port_str = str(port) if port not in (None, "") else ""
    port_segment = f":{port_str}" if port_str and port_str != default_port else ""
    return f"{scheme}://{endpoint}{port_segment}"


def build_public_object_url(object_key: str, base_url: str, bucket: str) -> str:
    return f"{base_url.rstrip('/')}/{bucket}/{object_key.lstrip('/')}"


def _decode_segment(segment: str) -> str:
    # %C3 lẻ (không phải UTF-8 hợp lệ) -> giữ nguyên segment gốc
    try:
        return unquote(segment, errors="strict")
    except UnicodeDecodeError:
        return segment


def get_object_key_from_public_url(public_url: str | None, base_url: str, bucket: str) -> str | None:
    """
    Suy ra object key từ public URL của file PDF.

    - URL bắt đầu bằng "<base_url>/<bucket>/": phần còn lại chính là key (giữ nguyên).
    - Ngược lại: parse path, decode từng segment (%20 -> ' '), bỏ segment bucket ở đầu nếu có.
    Trả về None nếu URL rỗng hoặc không suy ra được key.
    """
    if not public_url:
        return None
    trimmed = public_url.strip()
    if not trimmed:
        return None
    prefix = f"{base_url.rstrip('/')}/{bucket}/"
    if trimmed.startswith(prefix):
        return trimmed[len(prefix):] or None
    try:
        parsed = urlparse(trimmed)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    parts = [_decode_segment(segment) for segment in parsed.path.split("/") if segment]
    if not parts:
        return None
    if parts[0] == bucket:
        parts = parts[1:]
    return "/".join(parts) or None
