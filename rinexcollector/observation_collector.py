import logging
import threading
from datetime import timedelta

from .channel import Channel
from .collector import Collector, creation_date, run_by
from .config import Config
from .constants import PROGRAM_NAME
from .messages import (
    ClockMessage,
    EndOfEpochMessage,
    MeasurementMessage,
    ObservationCollectorMessage,
    ReceiverInfoMessage,
)
from .naming import FileKind
from .observables import header_observables
from .records import (
    ClockObservation,
    ObservationHeader,
    ObservationRecord,
    SignalObservation,
)
from .session import Encoder, HeaderEncodingError, RecordEncodingError
from .types import Constellation, Epoch, Satellite
from .utils import InvariantError, round_datetime

logger = logging.getLogger(__name__)

# The receiver clock solution is timestamped with a whole millisecond while
# measurement epochs include the receiver clock offset, which is kept within
# this bound.
CLOCK_EPOCH_TOLERANCE = timedelta(milliseconds=1)


class ObservationEpochBuffer:
    """Accumulates the observations made at a single epoch.

    The epoch is kept when the buffer is cleared, so later content can be
    compared against the last epoch it held.
    """

    def __init__(self) -> None:
        self.epoch: Epoch | None = None
        self.clock: ClockObservation | None = None
        self._observations: dict[Satellite, dict[str, SignalObservation]] = {}

    @property
    def has_content(self) -> bool:
        return bool(self._observations)

    def add(self, code: str, observation: SignalObservation) -> None:
        """Adds an observation.

        A second value for the same satellite and observable replaces the first.
        """

        self._observations.setdefault(observation.satellite, {})[code] = observation

    def take(self) -> ObservationRecord:
        """Returns the buffered record and clears the buffer."""

        if self.epoch is None:
            raise InvariantError("Nothing to take from an empty buffer")

        record = ObservationRecord(
            epoch=self.epoch, observations=self._observations, clock=self.clock
        )
        self.clear()
        return record

    def clear(self) -> None:
        self.clock = None
        self._observations = {}


class ObservationCollector(Collector[ObservationCollectorMessage]):
    """Writes one observation record per epoch.

    Observations are buffered until a later epoch or an end of epoch marker
    shows the epoch is complete, then written as a single record. Epochs are
    expected in non-decreasing order: observations for an epoch that was
    already written are dropped.
    """

    kind = FileKind.OBSERVATION

    def __init__(
        self,
        config: Config,
        channel: Channel[ObservationCollectorMessage],
        encoder: Encoder,
        shutdown: threading.Event,
    ) -> None:
        super().__init__(config, channel, encoder, shutdown)
        self._buffer = ObservationEpochBuffer()

        # The epoch of the last record that was written (or discarded).
        self._last_flushed: Epoch | None = None

        self._receiver_model = ""
        self._receiver_firmware = ""

    def handle(self, message: ObservationCollectorMessage) -> None:
        match message:
            case MeasurementMessage():
                self._handle_observation(message.epoch, message.observation)

            case ClockMessage():
                self._handle_clock(message.epoch, message.bias)

            case EndOfEpochMessage():
                self._handle_end_of_epoch(message.epoch)

            case ReceiverInfoMessage():
                # Only affects files opened from now on, released headers
                # don't change.
                self._receiver_model = message.model
                self._receiver_firmware = message.firmware

            case _:
                raise InvariantError(f"Unexpected message: {message}")

    def _handle_observation(self, epoch: Epoch, observation: SignalObservation) -> None:
        if not self._is_enabled(observation):
            return

        if not self._is_sampled(epoch):
            logger.debug(
                f"[{observation.satellite}] Skipping observation off the sampling"
                f" grid at {epoch}"
            )
            return

        epoch = self._round(epoch)
        if not self._advance_to(epoch):
            logger.debug(
                f"[{observation.satellite}] Dropping late observation at {epoch}"
            )
            return

        self._buffer.add(observation.code(self._config.revision), observation)

    def _handle_clock(self, epoch: Epoch, bias: float) -> None:
        if not self._is_sampled(epoch):
            return

        epoch = self._round(epoch)

        buffered = self._buffer.epoch
        if buffered is not None and abs(epoch - buffered) <= CLOCK_EPOCH_TOLERANCE:
            epoch = buffered

        if not self._advance_to(epoch):
            logger.debug(f"Dropping late clock bias at {epoch}")
            return

        self._buffer.clock = ClockObservation(bias)

    def _handle_end_of_epoch(self, epoch: Epoch) -> None:
        buffered = self._buffer.epoch
        if (
            self._buffer.has_content
            and buffered is not None
            and buffered <= self._round(epoch) + CLOCK_EPOCH_TOLERANCE
        ):
            self._flush()

    def _advance_to(self, epoch: Epoch) -> bool:
        """Prepares the buffer to accept content at ``epoch``, flushing the
        buffered epoch first if ``epoch`` is later.

        Returns ``False`` if ``epoch`` is too old to be accepted.
        """

        if self._last_flushed is not None and epoch <= self._last_flushed:
            return False

        buffered = self._buffer.epoch
        if buffered is not None and epoch != buffered:
            # A buffer without observations only holds a clock bias, which
            # belongs to the same epoch if it's within tolerance.
            within_tolerance = abs(epoch - buffered) <= CLOCK_EPOCH_TOLERANCE

            if epoch < buffered and (self._buffer.has_content or not within_tolerance):
                return False

            if self._buffer.has_content:
                self._flush()
            else:
                clock = self._buffer.clock
                self._buffer.clear()
                if within_tolerance:
                    self._buffer.clock = clock

        self._buffer.epoch = epoch
        return True

    def _flush(self) -> None:
        """Writes the buffered epoch, opening or rotating the file as needed.

        The epoch is discarded if a new file's header can't be written.
        """

        epoch = self._buffer.epoch
        if epoch is None or not self._buffer.has_content:
            raise InvariantError("Nothing to flush")

        try:
            session = self._ensure_session(epoch)
        except HeaderEncodingError as e:
            self._abandon_session(e)
            return

        record = self._buffer.take()
        self._last_flushed = epoch

        try:
            session.write(record)
        except RecordEncodingError as e:
            logger.error(f"Discarding observations at {epoch}: {e}")

    def _flush_on_shutdown(self) -> None:
        if self._buffer.has_content:
            self._flush()

    def _discard(self) -> None:
        if self._buffer.epoch is not None:
            self._last_flushed = self._buffer.epoch
        self._buffer.clear()

    def _build_header(self, start: Epoch, epoch: Epoch) -> ObservationHeader:
        return ObservationHeader(
            revision=self._config.revision,
            program=PROGRAM_NAME,
            run_by=run_by(),
            date=creation_date(),
            marker_name=self._config.station_name,
            observer=self._config.operator or "",
            agency=self._config.agency or "",
            receiver_model=self._receiver_model,
            receiver_firmware=self._receiver_firmware,
            observables=header_observables(self._config),
            time_of_first_observation=epoch,
            timescale=self._config.timescale,
            interval=self._config.sampling_period,
        )

    def _constellations(self) -> frozenset[Constellation]:
        return self._config.constellations

    def _is_enabled(self, observation: SignalObservation) -> bool:
        return (
            observation.satellite.constellation in self._config.constellations
            and observation.band in self._config.bands
            and observation.measurement in self._config.measurements
        )

    def _is_sampled(self, epoch: Epoch) -> bool:
        """Whether ``epoch`` is on the sampling grid, give or take the receiver
        clock offset. Epochs in between are skipped.

        Sub-second epochs are rounded onto the grid instead.
        """

        period = self._config.sampling_period
        if period < timedelta(seconds=1):
            return True

        return abs(epoch - round_datetime(epoch, period)) <= CLOCK_EPOCH_TOLERANCE

    def _round(self, epoch: Epoch) -> Epoch:
        # Sub-second sampling produces fractional epochs, which are rounded to
        # the nominal sampling grid.
        if self._config.sampling_period < timedelta(seconds=1):
            return round_datetime(epoch, self._config.sampling_period)
        return epoch
