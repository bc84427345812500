"""Time-bounded invocation of collaborator calls."""

import concurrent.futures
import contextvars
import threading
import time
from typing import Callable, Optional, Set, TypeVar

from matchtrust.logging import get_logger

from .exceptions import CollaboratorTimeoutError, CollaboratorUnavailable

logger = get_logger(__name__, component="collaborators")

T = TypeVar("T")


class BoundedCaller:
    """Runs collaborator calls on their own worker thread with a per-call timeout.

    Every call starts on a dedicated thread as soon as it is made, so the
    bound covers execution only and concurrent searches never queue behind
    each other. The call runs in a copy of the caller's context, keeping log
    context such as ``search_id`` on records emitted by the collaborator.

    A call that exceeds its bound raises CollaboratorTimeoutError in the
    caller's thread. The worker thread is not interrupted; its eventual
    result is discarded.

    Attributes:
        timeout_seconds: Default bound applied to every call
    """

    def __init__(self, timeout_seconds: float):
        """Initialize the caller.

        Args:
            timeout_seconds: Default per-call time bound
        """
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got: {timeout_seconds}")
        self.timeout_seconds = timeout_seconds
        self._threads: Set[threading.Thread] = set()
        self._lock = threading.Lock()

    def call(
        self,
        name: str,
        func: Callable[..., T],
        *args,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> T:
        """Invoke ``func(*args, **kwargs)`` and wait at most ``timeout`` seconds.

        Args:
            name: Collaborator name, used in errors and logs
            func: Callable to run
            timeout: Override of the default bound

        Returns:
            Whatever ``func`` returns

        Raises:
            CollaboratorTimeoutError: If the bound is exceeded
            CollaboratorUnavailable: If ``func`` raises anything else
        """
        bound = timeout if timeout is not None else self.timeout_seconds
        future = self._start(name, contextvars.copy_context(), func, args, kwargs)
        try:
            return future.result(timeout=bound)
        except concurrent.futures.TimeoutError as e:
            logger.warning(
                f"Collaborator {name} timed out after {bound} seconds",
                extra={
                    "event": "collaborator.timeout",
                    "collaborator": name,
                    "timeout_seconds": bound,
                },
            )
            raise CollaboratorTimeoutError(
                f"{name} did not respond within {bound} seconds",
                collaborator=name,
                timeout_seconds=bound,
            ) from e
        except CollaboratorUnavailable:
            raise
        except Exception as e:
            logger.error(
                f"Collaborator {name} failed: {e}",
                extra={
                    "event": "collaborator.error",
                    "collaborator": name,
                    "error_type": type(e).__name__,
                },
            )
            raise CollaboratorUnavailable(f"{name} failed: {e}", collaborator=name) from e

    def _start(self, name, context, func, args, kwargs) -> concurrent.futures.Future:
        future: concurrent.futures.Future = concurrent.futures.Future()
        future.set_running_or_notify_cancel()

        def run():
            try:
                future.set_result(context.run(func, *args, **kwargs))
            except BaseException as e:
                future.set_exception(e)
            finally:
                with self._lock:
                    self._threads.discard(thread)

        thread = threading.Thread(target=run, name=f"collaborator-{name}", daemon=True)
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return future

    @property
    def in_flight(self) -> int:
        """Calls whose worker thread has not finished, including timed-out ones."""
        with self._lock:
            return len(self._threads)

    def shutdown(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """Optionally wait for in-flight calls to finish.

        Args:
            wait: Join worker threads still running
            timeout: Overall limit on the wait, in seconds
        """
        if not wait:
            return
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
