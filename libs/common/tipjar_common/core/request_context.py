from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Any

from pydantic import Field

from tipjar_common.ids import RequestId, UserId
from tipjar_common.utils import ContextVarManager, JsonModel, use_context_var


class RequestContext(JsonModel):
    request_id: RequestId = Field(default_factory=lambda: RequestId(uuid.uuid4()))
    endpoint: str | None = None

    user_id: UserId | None = None

    @staticmethod
    def get() -> RequestContext:
        return _context_var.get()

    @staticmethod
    def get_or_none() -> RequestContext | None:
        return _context_var.get(None)

    @staticmethod
    def context(**values: Any) -> ContextVarManager[RequestContext]:
        return use_context_var(_context_var, RequestContext(**values))


_context_var: ContextVar[RequestContext] = ContextVar("request_context")
