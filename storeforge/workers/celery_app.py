"""Celery application running deferred GDPR compliance actions.

Redis is both broker and result backend, the same instance the webhook
service stores shop data in. A task handed over by a webhook request must
survive a worker crash, so tasks are acknowledged only after they finish.
"""

from celery import Celery

from storeforge.core.config import settings

celery_app = Celery(
    "storeforge",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "storeforge.workers.tasks.compliance",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # An export or shop erase finishes well within this; a stuck one is killed
    task_time_limit=300,
    task_soft_time_limit=240,
    # Redelivered on worker loss; the actions are idempotent
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    result_expires=3600,
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    task_default_queue="default",
    # Run workers with -Q compliance
    task_routes={
        "tasks.compliance.*": {"queue": "compliance"},
    },
)


class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Retry policy for compliance tasks.

    Any failure (Redis unreachable, Resend rejecting an export) is retried
    with jittered exponential backoff, at most ten minutes apart, five times.
    Shopify has already been answered by then, so these retries are the only
    ones the request gets.
    """

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
    max_retries = 5
