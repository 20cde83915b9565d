"""Celery app and periodic maintenance tasks."""

from celery import Celery
from reservation_rbac.core.config import settings

celery_app = Celery(
    "reservation_rbac",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_soft_time_limit=60,
    task_time_limit=120,
    beat_schedule={
        "sweep-expired-assignments": {
            "task": "sweep_expired_assignments",
            "schedule": float(settings.EXPIRATION_SWEEP_SECONDS),
        },
    },
)


@celery_app.task(bind=True, name="sweep_expired_assignments")
def sweep_expired_assignments(self) -> dict:
    """Record expired role grants so their slots are released.

    Resolution never depends on this task having run.
    """
    from reservation_rbac.db.session import SessionLocal
    from reservation_rbac.services.user_role_service import user_role_service

    db = SessionLocal()
    try:
        swept = user_role_service.sweep_expired(db)
        return {"swept": swept}
    finally:
        db.close()
