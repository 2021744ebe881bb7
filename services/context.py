"""
services/context.py
───────────────────
Per-request context handed explicitly to service calls. Collects operation
timings for one request instead of a process-wide metrics map, and binds the
request id onto log records.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from utils.logger import logger

if TYPE_CHECKING:
    from loguru import Logger


@dataclass
class RequestContext:
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timings_ms: dict[str, float] = field(default_factory=dict)

    @property
    def log(self) -> Logger:
        return logger.bind(request_id=self.request_id)

    @contextmanager
    def timed(self, operation: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.timings_ms[operation] = round((time.perf_counter() - start) * 1000, 3)

    def summary(self) -> str:
        parts = ", ".join(f"{op}={ms}ms" for op, ms in self.timings_ms.items())
        return f"[{self.request_id}] {parts or 'no operations'}"
