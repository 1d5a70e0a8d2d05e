"""arq worker settings module.

Import path for arq CLI: arq skilltrack.workers.settings.WorkerSettings
"""

from __future__ import annotations

from skilltrack.workers.deadlines import WorkerSettings

__all__ = ["WorkerSettings"]
