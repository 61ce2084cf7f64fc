"""Worker render ảnh trang sách: job store, processor, Celery tasks, CLI và API."""
