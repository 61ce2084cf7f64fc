"""Tests cho key builder (định dạng key phải khớp tuyệt đối với reader)."""
import pytest

from render_core.keys import (
    build_book_assets_prefix,
    build_page_image_key,
    build_public_base_url,
    build_public_object_url,
    get_object_key_from_public_url,
)

BASE = "https://minio.test"
BUCKET = "books"


def test_assets_prefix():
    assert build_book_assets_prefix(42) == "book-pages/42"


@pytest.mark.parametrize(
    "page, expected",
    [
        (1, "book-pages/7/page-0001.jpg"),
        (12, "book-pages/7/page-0012.jpg"),
        (999, "book-pages/7/page-0999.jpg"),
        (1234, "book-pages/7/page-1234.jpg"),
    ],
)
def test_page_image_key(page, expected):
    assert build_page_image_key(7, page) == expected


def test_page_key_is_pure():
    assert build_page_image_key(3, 5) == build_page_image_key(3, 5)
    assert build_page_image_key(3, 5) != build_page_image_key(5, 3)


def test_page_key_lives_under_assets_prefix():
    assert build_page_image_key(9, 2).startswith(build_book_assets_prefix(9) + "/")


def test_round_trip_public_url_to_key():
    for key in [build_page_image_key(11, n) for n in (1, 2, 150)] + ["uploads/pdfs/book 1.pdf"]:
        url = build_public_object_url(key, BASE, BUCKET)
        assert get_object_key_from_public_url(url, BASE, BUCKET) == key


def test_public_object_url_strips_leading_slash():
    assert build_public_object_url("/a/b.pdf", BASE + "/", BUCKET) == "https://minio.test/books/a/b.pdf"


def test_key_from_foreign_host_decodes_segments_and_drops_bucket():
    url = "http://cdn.example.com/books/uploads/my%20book%20%281%29.pdf"
    assert get_object_key_from_public_url(url, BASE, BUCKET) == "uploads/my book (1).pdf"


def test_key_from_foreign_host_without_bucket_segment():
    url = "https://cdn.example.com/uploads/a.pdf"
    assert get_object_key_from_public_url(url, BASE, BUCKET) == "uploads/a.pdf"


def test_invalid_percent_sequence_kept_raw():
    url = "https://cdn.example.com/books/uploads/100%zz.pdf"
    assert get_object_key_from_public_url(url, BASE, BUCKET) == "uploads/100%zz.pdf"


def test_invalid_utf8_segment_kept_raw():
    url = "https://cdn.example.com/books/uploads/caf%C3.pdf"
    assert get_object_key_from_public_url(url, BASE, BUCKET) == "uploads/caf%C3.pdf"


def test_undecodable_segment_does_not_affect_neighbours():
    url = "https://cdn.example.com/books/my%20dir/caf%C3.pdf"
    assert get_object_key_from_public_url(url, BASE, BUCKET) == "my dir/caf%C3.pdf"


@pytest.mark.parametrize(
    "url",
    [None, "", "   ", "not a url", "https://cdn.example.com/", "https://cdn.example.com/books/"],
)
def test_unresolvable_urls(url):
    assert get_object_key_from_public_url(url, BASE, BUCKET) is None


@pytest.mark.parametrize(
    "endpoint, use_ssl, port, expected",
    [
        ("minio.test", True, None, "https://minio.test"),
        ("minio.test", True, "443", "https://minio.test"),
        ("minio.test", True, 9000, "https://minio.test:9000"),
        ("minio.test", False, "80", "http://minio.test"),
        ("localhost", False, "9000", "http://localhost:9000"),
    ],
)
def test_public_base_url(endpoint, use_ssl, port, expected):
    assert build_public_base_url(endpoint, use_ssl, port) == expected


def test_public_base_url_requires_endpoint():
    with pytest.raises(ValueError):
        build_public_base_url("", True, None)
