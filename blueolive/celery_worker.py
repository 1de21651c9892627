from blueolive.celery_app import celery_app
from blueolive.tasks import analysis_worker, job_reconciler

__all__ = [
    "celery_app",
    "analysis_worker",
    "job_reconciler",
]
