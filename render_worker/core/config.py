from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel
import os

from render_core.keys import build_public_base_url

# Load infra/.env khi chạy local (render_worker/core/config.py -> repo root = 3 levels up)
_repo_root = Path(__file__).resolve().parent.parent.parent
_infra_env = _repo_root / "infra" / ".env"
if _infra_env.exists():
    load_dotenv(_infra_env)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _database_url() -> str:
    """Ưu tiên DATABASE_URL; không có thì lắp từ POSTGRES_*."""
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5434")
    user = os.getenv("POSTGRES_USER", "reading_buddy")
    password = os.getenv("POSTGRES_PASSWORD", "")
    db = os.getenv("POSTGRES_DB", "reading_buddy")
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


def _s3_endpoint() -> str:
    """S3/MinIO endpoint cho boto3: ưu tiên S3_ENDPOINT, fallback MINIO_ENDPOINT + MINIO_PORT + MINIO_USE_SSL."""
    ep = os.getenv("S3_ENDPOINT", "").strip()
    if ep:
        return ep
    minio_ep = os.getenv("MINIO_ENDPOINT", "").strip()
    if not minio_ep:
        return ""
    return build_public_base_url(minio_ep, _env_bool("MINIO_USE_SSL", "true"), os.getenv("MINIO_PORT"))


def _public_base_url() -> str:
    """Base URL công khai dùng trong books.pdf_url; mặc định trùng endpoint MinIO."""
    url = os.getenv("MINIO_PUBLIC_BASE_URL", "").strip()
    if url:
        return url.rstrip("/")
    return _s3_endpoint()


def _stale_after_minutes() -> int | None:
    raw = os.getenv("RENDER_STALE_AFTER_MINUTES", "").strip()
    return int(raw) if raw else None


class Settings(BaseModel):
    database_url: str = _database_url()
    s3_endpoint: str = _s3_endpoint()
    s3_public_base_url: str = _public_base_url()
    s3_access_key: str = os.getenv("S3_ACCESS_KEY") or os.getenv("MINIO_ACCESS_KEY", "")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY") or os.getenv("MINIO_SECRET_KEY", "")
    s3_bucket: str = os.getenv("S3_BUCKET") or os.getenv("MINIO_BUCKET_NAME", "reading-buddy")
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "")
    celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", "")
    render_keep_temp: bool = _env_bool("RENDER_KEEP_TEMP")
    render_tmp_dir: str | None = os.getenv("RENDER_TMP_DIR", "").strip() or None
    render_stale_after_minutes: int | None = _stale_after_minutes()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_file: str = os.getenv("LOG_FILE", "logs/render_worker_{time:YYYY-MM-DD}.log").strip()


settings = Settings()
