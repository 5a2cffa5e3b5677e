"""Model gateway with a concurrency cap and hard timeout, plus structured decoders."""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from discovery_orchestrator.review.llm import ChatModel
from discovery_orchestrator.review.schemas import (
    HotDocumentModelResponse,
    PrivilegeModelResponse,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


@dataclass(frozen=True)
class GatewayResult:
    status: str
    content: str | None = None
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True)
class DecodeResult(Generic[ResponseT]):
    value: ResponseT | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None


class ModelGateway:
    """Call a chat model with a process-wide concurrency cap and a hard timeout.

    Failures never raise: they come back as `GatewayResult(status="failed")`
    so callers decide the fallback explicitly.
    """

    def __init__(
        self,
        model: ChatModel,
        *,
        timeout_s: float = 30.0,
        max_concurrency: int = 2,
    ) -> None:
        self.model = model
        self.timeout_s = timeout_s
        self.max_concurrency = max_concurrency
        self._slots = threading.BoundedSemaphore(max_concurrency)

    def complete(self, *, system: str, user: str) -> GatewayResult:
        started_at = time.perf_counter()
        acquired = self._slots.acquire(timeout=self.timeout_s)
        if not acquired:
            return GatewayResult(
                status="failed",
                error=f"Model gateway busy for {self.timeout_s:.2f}s",
                duration_ms=_duration_ms(started_at),
            )
        try:
            content = self._complete_once(system=system, user=user)
        except Exception as exc:  # noqa: BLE001
            logger.warning("model_gateway event=failed error=%s", exc)
            return GatewayResult(
                status="failed",
                error=str(exc),
                duration_ms=_duration_ms(started_at),
            )
        return GatewayResult(status="ok", content=content, duration_ms=_duration_ms(started_at))

    def _complete_once(self, *, system: str, user: str) -> str:
        """Run one call on a helper thread; the caller must hold a slot.

        The slot is released when the call itself finishes, so a timed-out
        call keeps occupying it until the model returns.
        """
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(
                self.model.complete,
                system=system,
                user=user,
                timeout_s=self.timeout_s,
            )
        except Exception:
            self._slots.release()
            raise
        finally:
            pool.shutdown(wait=False)
        future.add_done_callback(lambda _: self._slots.release())
        try:
            return future.result(timeout=self.timeout_s)
        except TimeoutError as exc:
            raise TimeoutError(f"Model call timed out after {self.timeout_s:.2f}s") from exc


def decode_response(content: str | None, schema: type[ResponseT]) -> DecodeResult[ResponseT]:
    if not content:
        return DecodeResult(error="empty model response")
    try:
        parsed: Any = json.loads(content)
    except json.JSONDecodeError as exc:
        return DecodeResult(error=f"model response was not valid JSON: {exc.msg}")
    if not isinstance(parsed, dict):
        return DecodeResult(error="model response must be a JSON object")
    try:
        return DecodeResult(value=schema.model_validate(parsed))
    except ValidationError as exc:
        return DecodeResult(error=f"model response failed validation: {exc.error_count()} errors")


def decode_privilege_response(content: str | None) -> DecodeResult[PrivilegeModelResponse]:
    return decode_response(content, PrivilegeModelResponse)


def decode_hot_document_response(content: str | None) -> DecodeResult[HotDocumentModelResponse]:
    return decode_response(content, HotDocumentModelResponse)


def _duration_ms(started_at: float) -> float:
    return round((time.perf_counter() - started_at) * 1000.0, 2)
