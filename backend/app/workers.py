from celery import Celery
from .config import settings

celery_app = Celery(
    "render_relay",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks"]
)

celery_app.conf.update(
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    # One poll loop can take HEYGEN_POLL_ATTEMPTS * interval per job
    broker_transport_options={"visibility_timeout": 3600},
    task_routes={"app.tasks.process_render_queue_task": {"queue": "render"}},
    beat_schedule={
        "process-render-queue": {
            "task": "app.tasks.process_render_queue_task",
            "schedule": settings.WORKER_SCHEDULE_SECONDS,
        },
    },
)
