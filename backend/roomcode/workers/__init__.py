"""Background workers for the rooms domain."""

from roomcode.workers.creator_left import CreatorLeftWorker
from roomcode.workers.runner import spawn_workers

__all__ = ["CreatorLeftWorker", "spawn_workers"]
