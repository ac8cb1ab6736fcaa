import logging
import threading
from typing import Iterable

from .channel import Channel, ChannelClosed
from .config import Config
from .constants import SECONDS_PER_WEEK
from .gnsstime import (
    TimeScale,
    from_week_and_time_of_week,
    to_timescale,
    wrap_time_delta,
)
from .messages import (
    ClockMessage,
    EndOfEpochMessage,
    MeasurementMessage,
    NavigationCollectorMessage,
    ObservationCollectorMessage,
    ReceiverInfoMessage,
    SubframeMessage,
)
from .observables import signal_strength_indicator
from .packets import (
    ClockPacket,
    EndOfEpochPacket,
    Packet,
    RawMeasurement,
    RawMeasurementPacket,
    SubframePacket,
    VersionPacket,
)
from .records import LLI_HALF_CYCLE_AMBIGUITY, LLI_LOSS_OF_LOCK, SignalObservation
from .subframe_decoder import SubframeLayoutError, decode_subframe
from .types import Epoch, Measurement
from .utils import InvariantError

logger = logging.getLogger(__name__)


class Ingestion:
    """Turns decoded packets into messages for the collectors.

    Runs on the caller's thread. Messages that mustn't be lost are sent with
    back-pressure, i.e. this blocks while a collector's channel is full. Clock
    biases are refreshed every epoch so they're dropped instead.

    ``observations`` and ``navigation`` are the collectors' channels, ``None``
    if the collector isn't running.
    """

    def __init__(
        self,
        config: Config,
        shutdown: threading.Event,
        observations: Channel[ObservationCollectorMessage] | None = None,
        navigation: Channel[NavigationCollectorMessage] | None = None,
    ) -> None:
        self._config = config
        self._shutdown = shutdown
        self._observations = observations
        self._navigation = navigation

        # The receiver time of the last measurement epoch, which provides the
        # week for packets that only contain a time of week.
        self._receiver_week: int | None = None
        self._receiver_time_of_week = 0.0

    @property
    def receiver_week(self) -> int | None:
        return self._receiver_week

    def run(self, packets: Iterable[Packet | None]) -> None:
        """Dispatches packets until they run out or shutdown is requested.

        ``None`` packets are ignored, they give the loop a chance to notice
        shutdown while the receiver is silent.
        """

        try:
            for packet in packets:
                if self._shutdown.is_set():
                    break

                if packet is not None:
                    self.dispatch(packet)
        except ChannelClosed as e:
            logger.debug(f"Stopping ingestion, {e} was closed")

    def dispatch(self, packet: Packet) -> None:
        match packet:
            case RawMeasurementPacket():
                self._handle_raw_measurements(packet)

            case ClockPacket():
                self._handle_clock(packet)

            case SubframePacket():
                self._handle_subframe(packet)

            case EndOfEpochPacket():
                self._handle_end_of_epoch(packet)

            case VersionPacket():
                self._handle_version(packet)

            case _:
                raise InvariantError(f"Unexpected packet: {packet}")

    def _handle_raw_measurements(self, packet: RawMeasurementPacket) -> None:
        self._receiver_week = packet.week
        self._receiver_time_of_week = packet.time_of_week

        if self._observations is None:
            return

        epoch = self._to_epoch(packet.week, packet.time_of_week)
        for measurement in packet.measurements:
            for observation in self._to_observations(measurement, packet.clock_reset):
                self._observations.send(
                    MeasurementMessage(epoch=epoch, observation=observation)
                )

    def _handle_clock(self, packet: ClockPacket) -> None:
        if self._observations is None:
            return

        epoch = self._resolve_time_of_week(packet.time_of_week)
        if epoch is None:
            return

        message = ClockMessage(epoch=epoch, bias=packet.bias * 1e-9)
        if not self._observations.try_send(message):
            logger.info(f"Observation channel full, dropping clock bias at {epoch}")

    def _handle_subframe(self, packet: SubframePacket) -> None:
        if self._navigation is None:
            return

        if packet.satellite.constellation not in self._config.constellations:
            return

        try:
            subframe = decode_subframe(packet.words)
        except SubframeLayoutError as e:
            logger.debug(f"[{packet.satellite}] Skipping subframe: {e}")
            return

        self._navigation.send(
            SubframeMessage(
                satellite=packet.satellite,
                subframe=subframe,
                receiver_week=self._receiver_week,
            )
        )

    def _handle_end_of_epoch(self, packet: EndOfEpochPacket) -> None:
        if self._observations is None:
            return

        epoch = self._resolve_time_of_week(packet.time_of_week)
        if epoch is not None:
            self._observations.send(EndOfEpochMessage(epoch=epoch))

    def _handle_version(self, packet: VersionPacket) -> None:
        model = packet.hardware
        firmware = packet.software

        # Extensions such as "MOD=ZED-F9P" and "FWVER=HPG 1.32" are more
        # descriptive than the raw versions.
        for extension in packet.extensions:
            key, _, value = extension.partition("=")
            if key == "MOD" and value:
                model = value
            elif key == "FWVER" and value:
                firmware = value

        logger.info(f"Receiver: model={model}, firmware={firmware}")

        if self._observations is not None:
            self._observations.send(ReceiverInfoMessage(model=model, firmware=firmware))

    def _to_observations(
        self, measurement: RawMeasurement, clock_reset: bool
    ) -> list[SignalObservation]:
        """Returns the enabled observations of a measurement."""

        if (
            measurement.satellite.constellation not in self._config.constellations
            or measurement.band not in self._config.bands
        ):
            return []

        ssi = signal_strength_indicator(measurement.cno)

        lli = 0
        if measurement.lock_time == 0 or clock_reset:
            lli |= LLI_LOSS_OF_LOCK
        if not measurement.half_cycle_resolved:
            lli |= LLI_HALF_CYCLE_AMBIGUITY

        values: list[tuple[Measurement, float, int | None]] = []
        if measurement.pseudorange_valid:
            values.append((Measurement.PSEUDORANGE, measurement.pseudorange, None))
        if measurement.carrier_phase_valid:
            values.append(
                (Measurement.CARRIER_PHASE, measurement.carrier_phase, lli or None)
            )
        values.append((Measurement.DOPPLER, measurement.doppler, None))
        values.append((Measurement.SIGNAL_STRENGTH, measurement.cno, None))

        return [
            SignalObservation(
                satellite=measurement.satellite,
                band=measurement.band,
                measurement=kind,
                value=value,
                lli=value_lli,
                ssi=ssi,
            )
            for kind, value, value_lli in values
            if kind in self._config.measurements
        ]

    def _resolve_time_of_week(self, time_of_week: float) -> Epoch | None:
        """Converts a time of week into an epoch using the receiver's week.

        Returns ``None`` if no measurement epoch has been received yet.
        """

        if self._receiver_week is None:
            return None

        # The time of week may be just past a week boundary the measurements
        # haven't crossed yet, or vice versa.
        seconds = (
            self._receiver_week * SECONDS_PER_WEEK
            + self._receiver_time_of_week
            + wrap_time_delta(time_of_week - self._receiver_time_of_week)
        )
        return self._to_epoch(0, seconds)

    def _to_epoch(self, week: int, time_of_week: float) -> Epoch:
        gps_time = from_week_and_time_of_week(week, time_of_week)
        return to_timescale(gps_time, TimeScale.GPST, self._config.timescale)
