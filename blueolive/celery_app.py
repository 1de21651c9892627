"""
Celery application shared by the API (for ``send_task``) and the workers.

The broker and result backend default to the Valkey instance from settings;
an auth token switches both to TLS.
"""

import asyncio
import logging
import ssl

from celery import Celery, signals

from blueolive.config import settings
from blueolive.db import session as db_session

logger = logging.getLogger(__name__)

# Re-dispatch cadence for analyses stuck in pending
RECONCILE_INTERVAL_SECONDS = 60.0


@signals.worker_process_init.connect
def init_worker_process(**kwargs):
    """Drop the engine inherited from the parent; its connections belong to another process."""
    logger.info("Worker process starting, resetting database engine")
    db_session.reset_engine()


@signals.worker_process_shutdown.connect
def shutdown_worker_process(**kwargs):
    logger.info("Worker process stopping, disposing database engine")
    try:
        asyncio.run(db_session.dispose_engine())
    except Exception as e:
        logger.error(f"Error disposing database engine during shutdown: {e}")


def _build_broker_url() -> str:
    if settings.celery_broker_url:
        return settings.celery_broker_url

    host = f"{settings.valkey_host}:{settings.valkey_port}/{settings.valkey_db}"
    if not settings.valkey_auth_token:
        return f"redis://{host}"
    return f"rediss://:{settings.valkey_auth_token}@{host}?ssl_cert_reqs=CERT_REQUIRED"


def _build_result_backend() -> str:
    return settings.celery_result_backend or _build_broker_url()


def _ssl_options() -> dict:
    if not settings.valkey_auth_token:
        return {}
    return {
        "broker_use_ssl": {"ssl_cert_reqs": ssl.CERT_REQUIRED},
        "redis_backend_use_ssl": {"ssl_cert_reqs": ssl.CERT_REQUIRED},
    }


celery_app = Celery(
    "blueolive",
    broker=_build_broker_url(),
    backend=_build_result_backend(),
)

celery_app.conf.update(
    task_serializer=settings.celery_task_serializer,
    result_serializer=settings.celery_result_serializer,
    timezone="UTC",
    enable_utc=True,
    # A worker crash mid-analysis leaves the message on the queue
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "redispatch-stale-analyses": {
            "task": "job_reconciler.redispatch_stale_analyses",
            "schedule": RECONCILE_INTERVAL_SECONDS,
        },
    },
    **_ssl_options(),
)

celery_app.autodiscover_tasks(["blueolive.tasks"])


def get_celery_app() -> Celery:
    return celery_app
