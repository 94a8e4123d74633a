"""Durable step runner: memoized steps, retries with exponential backoff."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter

from .errors import JobStepError, NonRetriableError
from .models import JobRun
from .store import JobStore

logger = logging.getLogger(__name__)

_json_adapter: TypeAdapter[Any] = TypeAdapter(Any)


@dataclass
class RetryPolicy:
    """Exponential backoff between attempts of a whole run."""

    max_attempts: int = 4
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        return min(self.initial_delay * self.backoff_factor ** (attempt - 1), self.max_delay)


class StepContext:
    """Handed to a workflow; ``run`` executes a step at most once per run."""

    def __init__(self, store: JobStore, run_id: str) -> None:
        self.store = store
        self.run_id = run_id

    async def run(self, step_id: str, fn: Callable[[], Any]) -> Any:
        """Return the recorded output of ``step_id``, or call ``fn`` and record its output.

        ``fn`` may be sync or async. Its result is stored as JSON and the stored
        form is returned, so a replayed step yields exactly what a fresh one did.
        Failures are raised as JobStepError unless already a job error.
        """
        record = await asyncio.to_thread(self.store.get_step, self.run_id, step_id)
        if record is not None:
            logger.debug("Run %s: step %s already done, skipping", self.run_id, step_id)
            return record.output
        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
            output = _json_adapter.dump_python(result, mode="json")
        except (JobStepError, NonRetriableError):
            raise
        except Exception as e:
            raise JobStepError(step_id, str(e) or e.__class__.__name__) from e
        await asyncio.to_thread(self.store.save_step, self.run_id, step_id, output)
        logger.info("Run %s: step %s completed", self.run_id, step_id)
        return output


Workflow = Callable[[dict[str, Any], StepContext], Awaitable[Any]]


class JobRunner:
    """Runs registered workflows by event name against a JobStore."""

    def __init__(
        self,
        store: JobStore,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._workflows: dict[str, Workflow] = {}

    def register(self, name: str, workflow: Workflow) -> None:
        if name in self._workflows:
            raise ValueError(f"Workflow already registered for {name!r}")
        self._workflows[name] = workflow

    def has_workflow(self, name: str) -> bool:
        return name in self._workflows

    async def run(self, run_id: str) -> JobRun | None:
        """Drive one run to completed or failed; never raises except on cancellation.

        Returns the final run record, or None for an unknown run_id.
        """
        run = await asyncio.to_thread(self.store.get_run, run_id)
        if run is None:
            logger.error("Unknown job run %s", run_id)
            return None
        if run.finished:
            return run
        workflow = self._workflows.get(run.name)
        if workflow is None:
            logger.error("No workflow registered for %s (run %s)", run.name, run_id)
            return await self._finish(run_id, "failed", error=f"No workflow registered for {run.name}")

        policy = self.retry_policy
        while True:
            attempt = await asyncio.to_thread(self.store.start_attempt, run_id)
            try:
                result = await workflow(dict(run.data), StepContext(self.store, run_id))
            except asyncio.CancelledError:
                logger.info("Run %s cancelled during attempt %d; it will resume later", run_id, attempt)
                raise
            except NonRetriableError as e:
                logger.error("Run %s (%s) failed permanently: %s", run_id, run.name, e)
                return await self._finish(run_id, "failed", error=str(e))
            except Exception as e:
                if attempt >= policy.max_attempts:
                    logger.error(
                        "Run %s (%s) failed after %d attempts: %s", run_id, run.name, attempt, e
                    )
                    return await self._finish(run_id, "failed", error=str(e))
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Run %s (%s) attempt %d failed: %s; retrying in %.1fs",
                    run_id,
                    run.name,
                    attempt,
                    e,
                    delay,
                )
                await self._sleep(delay)
                continue
            logger.info("Run %s (%s) completed after %d attempt(s)", run_id, run.name, attempt)
            return await self._finish(
                run_id, "completed", result=_json_adapter.dump_python(result, mode="json")
            )

    async def _finish(self, run_id: str, status: str, *, error: str | None = None, result: Any = None) -> JobRun | None:
        await asyncio.to_thread(self.store.finish_run, run_id, status, error=error, result=result)
        return await asyncio.to_thread(self.store.get_run, run_id)
