from celery import Celery

from hylian.config import settings

celery_app = Celery("hylian")
celery_app.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
)
celery_app.autodiscover_tasks(["hylian.tasks"])
