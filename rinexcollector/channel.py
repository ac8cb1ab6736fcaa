import logging
import threading
from queue import Empty, Full, Queue
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a blocked sender checks whether the channel was closed, in seconds.
_SEND_POLL_INTERVAL = 0.1


class ChannelClosed(Exception):
    """Raised when sending to, or receiving from, a closed channel.

    A closed channel means the other side has terminated, which collectors and
    the ingestion loop treat as a request to shut down.
    """

    pass


class Channel(Generic[T]):
    """A bounded, first-in first-out channel between threads.

    Any number of threads may send, one thread receives. Once closed, sends fail
    immediately and receives fail once the messages that were already sent have
    been received.
    """

    def __init__(self, capacity: int, name: str = "channel") -> None:
        self._closed = threading.Event()
        self._name = name
        self._queue: Queue[T] = Queue(maxsize=capacity)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        if not self._closed.is_set():
            logger.debug(f"Closing {self._name}")
            self._closed.set()

    def send(self, message: T) -> None:
        """Sends a message, blocking while the channel is full."""

        while True:
            if self._closed.is_set():
                raise ChannelClosed(self._name)

            try:
                self._queue.put(message, timeout=_SEND_POLL_INTERVAL)
                return
            except Full:
                continue

    def try_send(self, message: T) -> bool:
        """Sends a message if there's room for it.

        Returns whether it was sent.
        """

        if self._closed.is_set():
            raise ChannelClosed(self._name)

        try:
            self._queue.put_nowait(message)
            return True
        except Full:
            return False

    def recv(self, timeout: float | None = None) -> T | None:
        """Receives the next message.

        Returns ``None`` if no message arrives within ``timeout`` seconds.
        """

        if self._closed.is_set() and self._queue.empty():
            raise ChannelClosed(self._name)

        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            if self._closed.is_set():
                raise ChannelClosed(self._name)
            return None

    def drain(self) -> list[T]:
        """Receives every message that's currently in the channel."""

        messages: list[T] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except Empty:
                return messages
