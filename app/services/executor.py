"""Tool execution with per-call failure isolation."""

import asyncio
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from app.models.llm import ToolCall, ToolResult
from app.tools.base import CallerContext
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)


class ToolExecutor:
    """Runs tool calls against the registry and turns every outcome into a ToolResult.

    Nothing raised by a handler escapes ``execute``: unknown tools, invalid
    input, handler exceptions and timeouts all become error results, so one
    failing call never affects its siblings.
    """

    def __init__(
        self,
        registry: ToolsRegistry,
        tool_timeout_seconds: float | None = 30.0,
        parallel: bool = False,
    ):
        """Initialize tool executor.

        Args:
            registry: Registry tools are looked up in
            tool_timeout_seconds: Limit for a single handler invocation (None disables it)
            parallel: Run the calls of one turn concurrently instead of one after another
        """
        self.registry = registry
        self.tool_timeout_seconds = tool_timeout_seconds
        self.parallel = parallel

    async def execute(self, tool_call: ToolCall, caller: CallerContext) -> ToolResult:
        """Execute a single tool call."""
        tool = self.registry.lookup(tool_call.name)
        if tool is None:
            logger.error(f"Unknown tool requested: {tool_call.name}")
            return self._error_result(tool_call, f"Unknown tool: {tool_call.name}")

        logger.debug(f"Executing tool: {tool_call.name} with input: {tool_call.input}")

        try:
            params = tool.parse_input(tool_call.input)
        except ValidationError as e:
            logger.warning(f"Invalid input for tool {tool_call.name}: {e}")
            return self._error_result(tool_call, f"Invalid input for {tool_call.name}: {self._describe(e)}")

        try:
            async with asyncio.timeout(self.tool_timeout_seconds):
                result = await tool.handler(params, caller)
            content = to_json(result).decode()
        except TimeoutError:
            logger.error(f"Tool {tool_call.name} timed out after {self.tool_timeout_seconds}s")
            return self._error_result(tool_call, f"Tool {tool_call.name} timed out")
        except PydanticSerializationError as e:
            logger.error(f"Tool {tool_call.name} returned an unserializable result: {e}")
            return self._error_result(tool_call, f"Tool {tool_call.name} returned an unserializable result")
        except Exception as e:
            logger.error(f"Tool {tool_call.name} failed: {e}", exc_info=True)
            return self._error_result(tool_call, str(e) or type(e).__name__)

        logger.debug(f"Tool {tool_call.name} succeeded: {content[:100]}...")
        return ToolResult(tool_use_id=tool_call.id, content=content, is_error=self._reports_failure(result))

    async def execute_all(self, tool_calls: list[ToolCall], caller: CallerContext) -> list[ToolResult]:
        """Execute the tool calls of one turn, returning results in call order."""
        if self.parallel:
            return list(await asyncio.gather(*(self.execute(call, caller) for call in tool_calls)))

        results = []
        for tool_call in tool_calls:
            results.append(await self.execute(tool_call, caller))
        return results

    def _error_result(self, tool_call: ToolCall, message: str) -> ToolResult:
        return ToolResult(tool_use_id=tool_call.id, content=json.dumps({"error": message}), is_error=True)

    def _reports_failure(self, result: Any) -> bool:
        """Whether the handler returned a value flagged ``success: false``."""
        if isinstance(result, BaseModel):
            return getattr(result, "success", True) is False
        if isinstance(result, Mapping):
            return result.get("success", True) is False
        return False

    def _describe(self, error: ValidationError) -> str:
        parts = []
        for detail in error.errors():
            location = ".".join(str(item) for item in detail["loc"]) or "input"
            parts.append(f"{location}: {detail['msg']}")
        return "; ".join(parts)
