"""
Event delivery

Routes index events to the LOCAL, QUEUED or CUSTOM handler
"""

import asyncio
import importlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from searchsync.core.enums import DeliveryKind
from searchsync.engine.adapter import IndexLifecycleAdapter
from searchsync.engine.events import IndexEvent
from searchsync.exceptions import DispatchError
from searchsync.utils import get_logger

logger = get_logger("engine.delivery")


class IndexEventHandler(ABC):
    """
    Applies index events

    handle() must tolerate redelivery of the same event. INDEX failures are
    logged, DELETE failures propagate.

    The dispatcher does not bootstrap indices before calling a handler.
    Custom handlers own bootstrap: apply events through the adapter they
    receive (adapter.handle, or adapter.ensure_index_started before writing
    elsewhere).
    """

    @abstractmethod
    async def handle(self, event: IndexEvent) -> None:
        """Apply or schedule one event"""

    async def start(self) -> None:
        pass

    async def stop(self, drain: bool = True) -> None:
        pass


class LocalIndexEventHandler(IndexEventHandler):
    """Applies events inline on the caller's task"""

    def __init__(self, adapter: IndexLifecycleAdapter) -> None:
        self.adapter = adapter

    async def handle(self, event: IndexEvent) -> None:
        await self.adapter.handle(event)


class QueuedIndexEventHandler(IndexEventHandler):
    """
    Bounded FIFO queue drained by a single consumer task

    handle() returns once the event is enqueued and waits while the queue
    is full. Events are applied strictly in enqueue order.
    """

    def __init__(self, adapter: IndexLifecycleAdapter, capacity: int = 1000) -> None:
        if capacity < 1:
            raise DispatchError(f"Queue capacity must be at least 1, got {capacity}")
        self.adapter = adapter
        self.capacity = capacity
        self._queue: Optional["asyncio.Queue[IndexEvent]"] = None
        self._consumer: Optional["asyncio.Task[None]"] = None
        self.failed_events = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.capacity)
        self._consumer = asyncio.create_task(self._consume(), name="searchsync-index-consumer")
        logger.info("Index event consumer started", extra={"capacity": self.capacity})

    async def handle(self, event: IndexEvent) -> None:
        if not self.running:
            await self.start()
        assert self._queue is not None
        await self._queue.put(event)

    async def _consume(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                await self.adapter.handle(event)
            except Exception as e:
                # The producer has already returned; nobody else can see this failure
                self.failed_events += 1
                logger.error(f"Queued {event} failed: {e}", exc_info=True)
            finally:
                queue.task_done()

    async def stop(self, drain: bool = True) -> None:
        """
        Stop the consumer

        Args:
            drain: Apply every queued event first; otherwise queued events
                are discarded. An event already being applied always completes.
        """
        if self._consumer is None or self._queue is None:
            return

        queue = self._queue
        if not drain:
            discarded = 0
            while not queue.empty():
                queue.get_nowait()
                queue.task_done()
                discarded += 1
            if discarded:
                logger.warning(f"Discarded {discarded} queued index events")

        await queue.join()

        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None
        self._queue = None
        logger.info("Index event consumer stopped")


@dataclass(frozen=True)
class DeliveryMode:
    """
    Delivery strategy: LOCAL, QUEUED or CUSTOM(handler)

    Only CUSTOM carries a handler.
    """

    kind: DeliveryKind
    handler: Optional[IndexEventHandler] = None

    def __post_init__(self) -> None:
        if self.kind == DeliveryKind.CUSTOM and self.handler is None:
            raise DispatchError("CUSTOM delivery mode requires a handler")
        if self.kind != DeliveryKind.CUSTOM and self.handler is not None:
            raise DispatchError(f"{self.kind.value} delivery mode does not take a handler")

    @classmethod
    def local(cls) -> "DeliveryMode":
        return cls(DeliveryKind.LOCAL)

    @classmethod
    def queued(cls) -> "DeliveryMode":
        return cls(DeliveryKind.QUEUED)

    @classmethod
    def custom(cls, handler: IndexEventHandler) -> "DeliveryMode":
        if not isinstance(handler, IndexEventHandler):
            raise DispatchError(f"{handler!r} is not an IndexEventHandler")
        return cls(DeliveryKind.CUSTOM, handler)

    @classmethod
    def parse(cls, value: Union["DeliveryMode", DeliveryKind, str]) -> "DeliveryMode":
        """Accept a mode, a kind, or a kind name; CUSTOM needs a real mode"""
        if isinstance(value, DeliveryMode):
            return value
        try:
            kind = DeliveryKind(value.lower() if isinstance(value, str) else value)
        except ValueError:
            raise DispatchError(f"Unknown delivery mode: {value}") from None
        return cls(kind)


def load_custom_handler(reference: str, adapter: IndexLifecycleAdapter) -> IndexEventHandler:
    """
    Resolve a CUSTOM handler from a dotted reference

    The reference is "package.module:Name" or "package.module.Name". Name is
    either an IndexEventHandler instance or a callable (usually a handler
    class) taking the adapter and returning one.

    Raises:
        DispatchError: the reference cannot be resolved to a handler
    """
    if ":" in reference:
        module_name, _, attr = reference.partition(":")
    else:
        module_name, _, attr = reference.rpartition(".")
    if not module_name or not attr:
        raise DispatchError(f"Invalid handler reference: {reference}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise DispatchError(f"Cannot import handler module {module_name}: {e}") from e

    target: Any = getattr(module, attr, None)
    if target is None:
        raise DispatchError(f"Module {module_name} has no attribute {attr}")

    handler = target
    if not isinstance(target, IndexEventHandler):
        if not callable(target):
            raise DispatchError(f"{reference} is neither a handler nor a handler factory")
        try:
            handler = target(adapter)
        except Exception as e:
            raise DispatchError(f"Cannot construct handler {reference}: {e}") from e

    if not isinstance(handler, IndexEventHandler):
        raise DispatchError(f"{reference} did not produce an IndexEventHandler")

    logger.info(f"Custom index event handler loaded: {reference}")
    return handler


class DeliveryDispatcher:
    """Selects the handler for an event's delivery mode"""

    def __init__(
        self,
        adapter: IndexLifecycleAdapter,
        default_mode: Optional[DeliveryMode] = None,
        queue_capacity: int = 1000,
    ) -> None:
        self.adapter = adapter
        self.local = LocalIndexEventHandler(adapter)
        self.queued = QueuedIndexEventHandler(adapter, queue_capacity)
        self.default_mode = default_mode or DeliveryMode.local()
        self._custom_handlers: List[IndexEventHandler] = []

    def handler_for(self, mode: Optional[DeliveryMode] = None) -> IndexEventHandler:
        mode = mode or self.default_mode
        if mode.kind == DeliveryKind.LOCAL:
            return self.local
        if mode.kind == DeliveryKind.QUEUED:
            return self.queued
        assert mode.handler is not None
        if mode.handler not in self._custom_handlers:
            self._custom_handlers.append(mode.handler)
        return mode.handler

    async def dispatch(self, event: IndexEvent, mode: Optional[DeliveryMode] = None) -> None:
        """Hand an event to the handler of mode (the default mode when omitted)"""
        handler = self.handler_for(mode)
        logger.debug(f"Dispatching {event} to {handler.__class__.__name__}")
        await handler.handle(event)

    async def start(self) -> None:
        """Start the default mode's handler"""
        await self.handler_for().start()

    async def shutdown(self, drain: bool = True) -> None:
        """Stop the queue consumer and every custom handler used"""
        await self.queued.stop(drain=drain)
        for handler in self._custom_handlers:
            await handler.stop(drain=drain)
        self._custom_handlers = []
