import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from getpass import getuser
from typing import Any, Generic, TypeVar

from .channel import Channel, ChannelClosed
from .config import Config
from .naming import (
    FileKind,
    output_path,
    rinex_path,
    uses_crinex,
    window_end,
    window_start,
)
from .session import Encoder, FileSession, HeaderEncodingError
from .types import Constellation, Epoch

logger = logging.getLogger(__name__)

M = TypeVar("M")

# How long a collector waits for a message before checking for shutdown, in
# seconds.
RECV_TIMEOUT = 0.25


class Collector(ABC, Generic[M]):
    """Consumes messages from a channel and writes them to rotating files.

    Each collector runs on its own thread and owns all of its state. The base
    class implements the message loop, shutdown and the file session lifecycle:
    a session is opened for the first content that needs writing, and replaced
    when content falls beyond the end of its rotation grid window.
    """

    kind: FileKind

    def __init__(
        self,
        config: Config,
        channel: Channel[M],
        encoder: Encoder,
        shutdown: threading.Event,
    ) -> None:
        self._config = config
        self._channel = channel
        self._encoder = encoder
        self._shutdown = shutdown
        self._session: FileSession | None = None
        self._thread: threading.Thread | None = None

    @property
    def name(self) -> str:
        return f"{self.kind.value}-collector"

    @property
    def session(self) -> FileSession | None:
        return self._session

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        """Handles messages until shutdown, then flushes and closes the session.

        Messages that were sent before shutdown are still handled.
        """

        logger.debug(f"Starting {self.name}")

        try:
            while not self._shutdown.is_set():
                try:
                    message = self._channel.recv(timeout=RECV_TIMEOUT)
                except ChannelClosed:
                    logger.debug(f"{self.name} channel closed, shutting down")
                    break

                if message is not None:
                    self._dispatch(message)

            for message in self._channel.drain():
                self._dispatch(message)

            self._flush_on_shutdown()
        finally:
            self._close_session()
            self._channel.close()
            logger.debug(f"Stopped {self.name}")

    def _dispatch(self, message: M) -> None:
        try:
            self.handle(message)
        except HeaderEncodingError as e:
            self._abandon_session(e)

    def _abandon_session(self, error: HeaderEncodingError) -> None:
        """Closes a session whose header couldn't be written and drops the
        content that was meant for it. The next content opens a new session."""

        logger.error(f"Abandoning {self.kind.value} file: {error}")
        self._close_session()
        self._discard()

    @abstractmethod
    def handle(self, message: M) -> None:
        """Handles a single message."""

    @abstractmethod
    def _build_header(self, start: Epoch, epoch: Epoch) -> Any:
        """Builds the header of a session starting at ``start`` whose first
        content is at ``epoch``."""

    @abstractmethod
    def _constellations(self) -> frozenset[Constellation]:
        """The constellations the next session will contain."""

    @abstractmethod
    def _flush_on_shutdown(self) -> None:
        """Writes any content that's still buffered.

        Header failures must be handled with ``_abandon_session``.
        """

    def _discard(self) -> None:
        """Drops buffered content after its session was abandoned."""

        pass

    def _ensure_session(self, epoch: Epoch) -> FileSession:
        """Returns the session content at ``epoch`` must be written to.

        The current session is closed and a new one opened if ``epoch`` is at or
        beyond the end of its window. The new session starts at the rotation
        grid boundary, not at ``epoch``. Content earlier than the current
        session's window is written to the current session.

        Raises a ``HeaderEncodingError`` if a new session's header can't be
        written.
        """

        if self._session is not None:
            if epoch < self._session.end:
                return self._session

            logger.info(f"Rotating {self.kind.value} file at {self._session.end}")
            self._close_session()

        start = window_start(epoch, self._config.snapshot_period)
        constellations = self._constellations()

        path = output_path(self.kind, epoch, self._config, constellations)
        crinex_path = None
        if uses_crinex(self.kind, self._config):
            crinex_path = path
            path = rinex_path(self.kind, epoch, self._config, constellations)

        self._session = FileSession.open(
            compression=self._config.compression,
            constellations=constellations,
            crinex_path=crinex_path,
            encoder=self._encoder,
            end=window_end(epoch, self._config.snapshot_period),
            header=self._build_header(start, epoch),
            path=path,
            start=start,
        )

        return self._session

    def _close_session(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None


def run_by() -> str:
    """The name written in the "RUN BY" header field."""

    try:
        return getuser()
    except (KeyError, OSError):
        return ""


def creation_date() -> datetime:
    """The time written in the "DATE" header field, in UTC."""

    return datetime.now(timezone.utc).replace(tzinfo=None)