"""
Directory Sync Module

Batched, idempotent reconciliation of identity-provider directories into
organization employees.

Leaves first:
- status_mapper: provider status -> employee status
- error_collector: bounded per-batch error sample
- reconciler: create / update / skip per directory user
- progress: cumulative integration sync state
- scheduler: partition a listing into reconcile-batch tasks
"""

from dirsync_api.sync.error_collector import ErrorCollector
from dirsync_api.sync.progress import ProgressAggregator
from dirsync_api.sync.reconciler import BatchReconciler
from dirsync_api.sync.scheduler import BatchScheduler, partition_users
from dirsync_api.sync.status_mapper import map_status

__all__ = [
    "BatchReconciler",
    "BatchScheduler",
    "ErrorCollector",
    "ProgressAggregator",
    "map_status",
    "partition_users",
]
