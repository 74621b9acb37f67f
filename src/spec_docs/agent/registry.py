"""Registry for async document tools.

Handlers return plain dicts. The registry owns the per-call envelope: input
validation against the tool's schema, a fresh address batch, conversion of
addressing failures into `{"error": payload}` and JSON encoding.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from time import perf_counter
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field

from spec_docs.addressing.cache import batch_scope
from spec_docs.addressing.errors import AddressingError
from spec_docs.config import AddressingConfig
from spec_docs.types import ToolTrace

logger = logging.getLogger(__name__)

WRITE_TAG = "write"
PREVIEW_CHARS = 320

ToolHandler = Callable[[Any], Awaitable[dict[str, Any]]]


class ToolSpec(BaseModel):
    """A named document tool with its input schema and handler."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: ToolHandler
    tags: list[str] = Field(default_factory=list)

    @property
    def mutates_documents(self) -> bool:
        return WRITE_TAG in self.tags


class ToolRegistry:
    def __init__(self, addressing: AddressingConfig | None = None) -> None:
        self.addressing = addressing or AddressingConfig()
        self._tools: dict[str, ToolSpec] = {}
        self._observer: Callable[[ToolTrace], None] | None = None

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def set_observer(self, observer: Callable[[ToolTrace], None] | None) -> None:
        """Set an optional callback invoked after each tool execution."""
        self._observer = observer

    async def execute(self, name: str, payload: dict[str, Any]) -> str:
        spec = self._tools.get(name)
        if spec is None:
            raise KeyError(f"Unknown tool: {name}")
        return await self._execute_spec(spec, payload)

    def as_langchain_tools(self, *, include_writes: bool = True) -> list[StructuredTool]:
        """Export tools for an agent runtime; `include_writes=False` gives a read-only set."""

        return [
            StructuredTool.from_function(
                name=spec.name,
                description=spec.description,
                args_schema=spec.args_schema,
                coroutine=self._build_coroutine(spec),
            )
            for spec in self.specs()
            if include_writes or not spec.mutates_documents
        ]

    def specs(self, tag: str | None = None) -> list[ToolSpec]:
        return [spec for spec in self._tools.values() if tag is None or tag in spec.tags]

    def names(self) -> list[str]:
        return list(self._tools)

    def _build_coroutine(self, spec: ToolSpec) -> Callable[..., Awaitable[str]]:
        async def _callable(**kwargs: Any) -> str:
            return await self._execute_spec(spec, kwargs)

        return _callable

    async def _execute_spec(self, spec: ToolSpec, payload: dict[str, Any]) -> str:
        data = spec.args_schema.model_validate(payload)
        error_code: str | None = None
        start = perf_counter()
        with batch_scope(self.addressing):
            try:
                result = await spec.handler(data)
            except AddressingError as exc:
                logger.info(f"Tool {spec.name} failed with {exc.code}: {exc.message}")
                error_code = exc.code
                result = {"error": exc.to_payload()}
        latency_ms = (perf_counter() - start) * 1000.0
        output = json.dumps(result, ensure_ascii=False, default=str)

        if self._observer is not None:
            self._observer(
                ToolTrace(
                    name=spec.name,
                    input_payload=payload,
                    output_preview=output[:PREVIEW_CHARS],
                    latency_ms=latency_ms,
                    error_code=error_code,
                )
            )
        return output
