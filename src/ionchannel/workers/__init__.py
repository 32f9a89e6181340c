"""Background processing with ProcessPoolExecutor."""

from ionchannel.workers.pool import AnalysisPool, TaskResult, map_in_process
from ionchannel.workers.tasks import run_evaluation_task

__all__ = [
    "AnalysisPool",
    "TaskResult",
    "map_in_process",
    "run_evaluation_task",
]
