"""arq worker settings module.

Import path for arq CLI: arq movibeers.workers.settings.WorkerSettings
"""

from __future__ import annotations

from movibeers.workers.jobs import WorkerSettings

__all__ = ["WorkerSettings"]
