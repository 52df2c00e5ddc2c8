"""Celery application: broker and result backend both backed by Redis.

Workers run as a separate process from the API server, so viewport batches
are acknowledged to the browser immediately and survive an API restart.

Task lifecycle states stored in Redis:
  PENDING  -> task dispatched, not yet picked up by a worker
  STARTED  -> worker has begun execution  (task_track_started=True)
  SUCCESS  -> task finished; result holds the batch counts
  FAILURE  -> task raised after its last retry
  RETRY    -> task failed and is waiting for its next retry attempt
"""

from celery import Celery

from pagewise.core.config import settings

celery_app = Celery(
    "pagewise",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["pagewise.infrastructure.tasks.tracking_tasks"],
)

celery_app.conf.update(
    # Serialisation
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # State tracking
    task_track_started=True,
    result_expires=86400,           # keep batch counts in Redis for 24 h
    # Reliability: at-least-once delivery
    task_acks_late=True,            # ack only after the task finishes
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,  # re-queue if the worker dies mid-batch
)
