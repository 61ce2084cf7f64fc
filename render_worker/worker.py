from celery import Celery
from celery.signals import worker_init

from render_worker.core.config import settings
from render_worker.core.logging import get_logger

logger = get_logger(__name__)


@worker_init.connect
def _init_redis_and_bucket(**kwargs):
    # 1) Redis (broker): kiểm tra kết nối
    if settings.celery_broker_url:
        try:
            logger.info("[REDIS] Đang kiểm tra kết nối Redis (broker)...")
            with celery_app.connection_or_acquire() as conn:
                conn.ensure_connection(max_retries=2)
            logger.info("[REDIS] ✅ Kết nối Redis thành công")
        except Exception as e:
            logger.exception(f"[REDIS] ❌ Không kết nối được Redis (broker): {e}")
            raise
    else:
        logger.warning("[REDIS] CELERY_BROKER_URL chưa cấu hình")
    # 2) MinIO bucket (không crash worker nếu S3 chưa cấu hình; task sẽ lỗi khi get/put)
    try:
        if settings.s3_endpoint:
            from render_worker.services.storage_service import ObjectStorage
            logger.info("[WORKER] Đang kiểm tra S3 bucket...")
            ObjectStorage().ensure_bucket()
            logger.info("[WORKER] ✅ S3 bucket sẵn sàng")
        else:
            logger.warning("[WORKER] S3/MinIO chưa cấu hình (MINIO_ENDPOINT/S3_ENDPOINT); task render sẽ lỗi khi đọc/ghi file.")
    except Exception:
        logger.exception("[WORKER] ⚠️ Không đảm bảo được S3 bucket; worker vẫn chạy, task có thể lỗi khi dùng storage.")


celery_app = Celery(
    "render_worker",
    broker=settings.celery_broker_url or None,
    backend=settings.celery_result_backend or None,
    include=["render_worker.tasks.render_tasks"],
)

# Worker chỉ xử lý tuần tự từng job; mỗi job render tuần tự từng trang
celery_app.conf.update(
    task_acks_late=False,
    worker_prefetch_multiplier=1,
)

if settings.render_stale_after_minutes:
    celery_app.conf.beat_schedule = {
        "render-fail-stale-jobs": {
            "task": "render.fail_stale_jobs",
            "schedule": 300.0,
        },
    }
