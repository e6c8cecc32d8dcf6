"""Run generation requests off the session thread.

Each request resolves exactly one ``Future[str]``: the raw reply text, or the
exception raised by the client. A cancelled future (for example after
``shutdown``) stands for a channel that closed without delivering anything.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from .grammar import GrammarKind

logger = logging.getLogger(__name__)


class Completer(Protocol):
    def complete(self, prompt: str, model: str | None = None) -> str: ...


class Gateway(Protocol):
    def submit(self, kind: GrammarKind, prompt: str) -> Future[str]: ...

    def shutdown(self) -> None: ...


@dataclass(frozen=True)
class Reply:
    """What a non-blocking drain of a request handle found."""

    text: str | None = None
    error: str | None = None
    closed: bool = False


class GenerationGateway:
    """Thread pool-backed gateway to the text-generation client."""

    def __init__(
        self,
        client: Completer,
        model: Callable[[], str] | None = None,
        max_workers: int = 4,
    ) -> None:
        self._client = client
        self._model = model
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rust-mentor-gen")

    def submit(self, kind: GrammarKind, prompt: str) -> Future[str]:
        """Start a request and return its single-slot handle."""
        model = self._model() if self._model is not None else None
        logger.info("Dispatching %s request (model=%s, %d prompt chars)", kind.value, model, len(prompt))
        return self._executor.submit(self._run, kind, prompt, model)

    def _run(self, kind: GrammarKind, prompt: str, model: str | None) -> str:
        try:
            text = self._client.complete(prompt, model=model)
        except Exception:
            logger.exception("%s request failed", kind.value)
            raise
        logger.info("%s request returned %d chars", kind.value, len(text))
        return text

    def shutdown(self) -> None:
        """Stop accepting work; queued requests are cancelled, running ones are abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)


def try_receive(handle: Future[str]) -> Reply | None:
    """Drain a handle without blocking; None while the request is still running."""
    if not handle.done():
        return None
    if handle.cancelled():
        return Reply(closed=True)
    exc = handle.exception()
    if exc is not None:
        return Reply(error=str(exc) or type(exc).__name__)
    return Reply(text=handle.result())
