"""Tool executor: dispatches model tool calls to their handlers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from pydantic import TypeAdapter

from .errors import ToolConfigurationError, ToolExecutionError
from .models import ToolCallRequest, ToolCallResult, ToolDeclaration
from .tool_catalog import validate_arguments

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]

_json_adapter: TypeAdapter[Any] = TypeAdapter(Any)


class ToolExecutor:
    """Runs declared tools by name.

    Construction fails if the declarations and handlers do not match one to one,
    so a catalog/handler mismatch surfaces at startup rather than mid-conversation.
    """

    def __init__(
        self,
        declarations: Sequence[ToolDeclaration],
        handlers: Mapping[str, ToolHandler],
    ) -> None:
        names = [d.name for d in declarations]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ToolConfigurationError(f"Duplicate tool declarations: {', '.join(duplicates)}")
        missing = sorted(set(names) - set(handlers))
        if missing:
            raise ToolConfigurationError(f"Declared tools without a handler: {', '.join(missing)}")
        undeclared = sorted(set(handlers) - set(names))
        if undeclared:
            raise ToolConfigurationError(f"Handlers without a declaration: {', '.join(undeclared)}")
        self._declarations = {d.name: d for d in declarations}
        self._handlers = dict(handlers)

    def list_tools(self) -> list[ToolDeclaration]:
        return list(self._declarations.values())

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [d.to_tool_schema() for d in self._declarations.values()]

    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Run one tool and return its JSON-compatible result.

        Raises ToolExecutionError for an unknown tool, invalid arguments, or a
        failure inside the handler.
        """
        declaration = self._declarations.get(name)
        if declaration is None:
            raise ToolExecutionError(name, f"Unknown tool: {name}")
        args = dict(arguments or {})
        problems = validate_arguments(declaration, args)
        if problems:
            raise ToolExecutionError(name, f"Invalid arguments for {name}: {'; '.join(problems)}")
        try:
            result = await self._handlers[name](args)
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError(name, str(e) or e.__class__.__name__) from e
        return _json_adapter.dump_python(result, mode="json")

    async def _execute_within(self, call: ToolCallRequest, timeout: float | None) -> Any:
        work = self.execute(call.name, call.arguments)
        declaration = self._declarations.get(call.name)
        if timeout is None:
            return await work
        if declaration is None or not declaration.mutates:
            return await asyncio.wait_for(work, timeout)
        # A write handed to a worker thread cannot be cancelled, so its real outcome is reported.
        task = asyncio.ensure_future(work)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.warning("Tool %s exceeded %gs; waiting for its write to finish", call.name, timeout)
            return await task

    async def run(self, call: ToolCallRequest, timeout: float | None = None) -> ToolCallResult:
        """Execute ``call`` and capture any failure as an unsuccessful result.

        Read-only tools are abandoned at ``timeout``. Tools that change stored state
        always finish, so a reported failure never hides an applied change.
        """
        try:
            data = await self._execute_within(call, timeout)
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %gs", call.name, timeout)
            return ToolCallResult.failure(call.name, f"Tool {call.name} timed out after {timeout:g}s")
        except ToolExecutionError as e:
            logger.warning("Tool %s failed: %s", call.name, e)
            return ToolCallResult.failure(call.name, str(e))
        except Exception as e:
            logger.exception("Tool %s produced an unusable result", call.name)
            return ToolCallResult.failure(call.name, str(e) or e.__class__.__name__)
        return ToolCallResult.ok(call.name, data)
