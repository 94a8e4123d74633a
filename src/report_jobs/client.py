"""Fire-and-forget submission of job events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .errors import NonRetriableError
from .models import JobRun
from .runner import JobRunner

logger = logging.getLogger(__name__)


class ReportJobClient:
    """Persists events as runs and executes them as background asyncio tasks."""

    def __init__(self, runner: JobRunner) -> None:
        self.runner = runner
        self._tasks: set[asyncio.Task] = set()

    def _schedule(self, run_id: str) -> asyncio.Task:
        task = asyncio.create_task(self.runner.run(run_id), name=f"job-run-{run_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def send(self, name: str, data: dict[str, Any]) -> str:
        """Store the event and start its run; returns the run_id without waiting."""
        if not self.runner.has_workflow(name):
            raise NonRetriableError(f"No workflow registered for {name}")
        run = await asyncio.to_thread(self.runner.store.create_run, name, data)
        self._schedule(run.run_id)
        logger.info("Scheduled %s as run %s", name, run.run_id)
        return run.run_id

    async def get_run(self, run_id: str) -> JobRun | None:
        return await asyncio.to_thread(self.runner.store.get_run, run_id)

    async def resume_incomplete(self) -> list[str]:
        """Restart runs left queued or running by a previous process."""
        runs = await asyncio.to_thread(self.runner.store.list_incomplete)
        for run in runs:
            self._schedule(run.run_id)
        if runs:
            logger.info("Resuming %d incomplete job run(s)", len(runs))
        return [r.run_id for r in runs]

    async def drain(self) -> None:
        """Wait for every scheduled run to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight runs; they stay incomplete and resume on next start."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
