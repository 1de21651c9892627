from blueolive.tasks import analysis_worker  # noqa: F401
from blueolive.tasks import job_reconciler  # noqa: F401

__all__ = [
    "analysis_worker",
    "job_reconciler",
]
