import gzip
import logging
from pathlib import Path
from typing import Any, Protocol, TextIO

import hatanaka

from .types import Constellation, Epoch

logger = logging.getLogger(__name__)


class HeaderEncodingError(Exception):
    """Indicates that a file's header couldn't be written.

    The file can't be used once this happens, so its session is abandoned.
    """

    pass


class RecordEncodingError(Exception):
    """Indicates that a record couldn't be written to a file.

    The record is lost but the file remains usable.
    """

    pass


class Encoder(Protocol):
    """Serializes headers and records into a file.

    Implementations should raise an ``OSError`` or ``ValueError`` on failure and
    should not write anything for a record they fail to serialize.
    """

    def format_header(self, header: Any, sink: TextIO) -> None: ...

    def format_record(self, record: Any, header: Any, sink: TextIO) -> None: ...


class FileSession:
    """An output file, from its header to its last record.

    A session covers one window of the rotation grid, ``[start, end)``. Once the
    header has been written it doesn't change.

    If ``crinex_path`` is set, plain RINEX is written to ``path`` and converted
    into a Hatanaka compressed file at ``crinex_path`` when the session is
    closed. Conversion happens once the file is complete because the
    compression is applied to whole files.
    """

    def __init__(
        self,
        *,
        compression: bool,
        constellations: frozenset[Constellation],
        crinex_path: Path | None,
        encoder: Encoder,
        end: Epoch,
        header: Any,
        path: Path,
        sink: TextIO,
        start: Epoch,
    ) -> None:
        self.constellations = constellations
        self.crinex_path = crinex_path
        self.end = end
        self.header = header
        self.path = path
        self.start = start

        self._compression = compression
        self._encoder = encoder
        self._sink: TextIO | None = sink

    @classmethod
    def open(
        cls,
        *,
        compression: bool,
        constellations: frozenset[Constellation],
        encoder: Encoder,
        end: Epoch,
        header: Any,
        path: Path,
        start: Epoch,
        crinex_path: Path | None = None,
    ) -> "FileSession":
        """Creates the file and writes its header.

        Raises a ``HeaderEncodingError`` if either fails, in which case nothing
        is left open and the file is removed.
        """

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # CRINEX files are compressed during conversion.
            sink = _open_sink(path, compression and crinex_path is None)
        except OSError as e:
            raise HeaderEncodingError(f"Unable to create {path}: {e}") from e

        try:
            encoder.format_header(header, sink)
            sink.flush()
        except (OSError, ValueError) as e:
            sink.close()
            path.unlink(missing_ok=True)
            raise HeaderEncodingError(f"Unable to write header to {path}: {e}") from e

        logger.info(f"Opened {path}")

        return cls(
            compression=compression,
            constellations=constellations,
            crinex_path=crinex_path,
            encoder=encoder,
            end=end,
            header=header,
            path=path,
            sink=sink,
            start=start,
        )

    @property
    def is_open(self) -> bool:
        return self._sink is not None

    def write(self, record: Any) -> None:
        """Appends a record to the file.

        Raises a ``RecordEncodingError`` if it can't be written.
        """

        if self._sink is None:
            raise RecordEncodingError(f"{self.path} is closed")

        try:
            self._encoder.format_record(record, self.header, self._sink)
            self._sink.flush()
        except (OSError, ValueError) as e:
            raise RecordEncodingError(f"Unable to write to {self.path}: {e}") from e

    def close(self) -> None:
        if self._sink is None:
            return

        try:
            self._sink.close()
        except OSError as e:
            logger.error(f"Unable to close {self.path}: {e}")
        finally:
            self._sink = None

        logger.info(f"Closed {self.path}")

        if self.crinex_path is not None:
            self._convert_to_crinex(self.crinex_path)

    def _convert_to_crinex(self, crinex_path: Path) -> None:
        # The plain RINEX file is kept if the conversion fails.
        try:
            content = hatanaka.compress(
                self.path.read_bytes(),
                compression="gz" if self._compression else "none",
            )
            crinex_path.write_bytes(content)
        except (OSError, ValueError, hatanaka.HatanakaException) as e:
            logger.error(f"Unable to convert {self.path} to CRINEX: {e}")
            return

        self.path.unlink()
        logger.info(f"Converted {self.path} to {crinex_path}")


def _open_sink(path: Path, compression: bool) -> TextIO:
    if compression:
        return gzip.open(path, "wt", encoding="ascii", newline="\n")
    else:
        return open(path, "w", encoding="ascii", newline="\n")
