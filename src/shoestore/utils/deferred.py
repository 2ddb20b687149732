"""Side effects that must wait until a block of work has finished.

Event handlers run synchronously inside ``repository.add``, which may itself
run while a product lock is held. Handlers hand slow work (admin broadcasts)
to ``defer``; inside a ``deferring()`` block it is queued and runs once the
outermost block exits cleanly. Outside any block it runs straight away.

Work queued by a block that raises is dropped.
"""

from collections.abc import Callable
from contextlib import contextmanager
from contextvars import ContextVar

import structlog

logger = structlog.get_logger(__name__)

_pending: ContextVar[list | None] = ContextVar("deferred_work", default=None)


def defer(func: Callable, *args, **kwargs) -> None:
    queue = _pending.get()
    if queue is None:
        func(*args, **kwargs)
    else:
        queue.append((func, args, kwargs))


@contextmanager
def deferring():
    # Nested blocks leave flushing to the outermost one
    if _pending.get() is not None:
        yield
        return

    queue: list = []
    token = _pending.set(queue)
    try:
        yield
    finally:
        _pending.reset(token)

    for func, args, kwargs in queue:
        try:
            func(*args, **kwargs)
        except Exception as exc:
            logger.error("Deferred work failed", work=getattr(func, "__name__", repr(func)), error=str(exc))
