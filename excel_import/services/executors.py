"""
Background executors used by asynchronous imports.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Protocol

from fastapi import BackgroundTasks


class ImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class ThreadTaskExecutor:
    """
    Runs each task on its own daemon thread, detached from the caller.
    """

    def __init__(self, *, thread_name_prefix: str = "excel-import") -> None:
        self._thread_name_prefix = thread_name_prefix
        self._counter = 0
        self._lock = threading.Lock()

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._counter += 1
            name = f"{self._thread_name_prefix}-{self._counter}"
        thread = threading.Thread(target=task, args=args, kwargs=kwargs, name=name, daemon=True)
        thread.start()


class FastAPIBackgroundTaskExecutor:
    """
    Defers the task to FastAPI's post-response background tasks.
    """

    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)
