"""Thư viện pipeline render trang sách: key builder, converter, quy ước file trang."""
