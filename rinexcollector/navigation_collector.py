import logging
import threading
from datetime import timedelta

from .channel import Channel
from .collector import Collector, creation_date, run_by
from .config import Config
from .constants import PROGRAM_NAME
from .ephemeris import EphemerisMessage, NavigationSubframeSet
from .gnsstime import TimeScale, from_week_and_time_of_week, to_timescale
from .messages import NavigationCollectorMessage, SubframeMessage
from .naming import FileKind
from .records import NavigationHeader
from .session import Encoder, RecordEncodingError
from .types import Constellation, Epoch, Satellite
from .utils import InvariantError, invariant

logger = logging.getLogger(__name__)

# The constellations whose navigation messages can be decoded. Both broadcast
# the GPS LNAV message on L1 C/A.
NAVIGATION_CONSTELLATIONS: frozenset[Constellation] = frozenset(
    {Constellation.GPS, Constellation.QZSS}
)


def should_publish(
    last_published: Epoch | None, toc: Epoch, min_republish_interval: timedelta
) -> bool:
    """Returns whether an ephemeris for ``toc`` should be written, given the
    time of clock of the last one written for the same satellite."""

    if last_published is None:
        return True

    # The same ephemeris is broadcast repeatedly, it's only written once.
    if toc == last_published:
        return False

    return toc - last_published >= min_republish_interval


class NavigationCollector(Collector[NavigationCollectorMessage]):
    """Reassembles ephemerides from subframes and writes them.

    Subframes are kept per satellite for the lifetime of the collector. Each
    time a satellite's set becomes complete its ephemeris is written, at most
    once per minimum republish interval.
    """

    kind = FileKind.NAVIGATION

    def __init__(
        self,
        config: Config,
        channel: Channel[NavigationCollectorMessage],
        encoder: Encoder,
        shutdown: threading.Event,
    ) -> None:
        super().__init__(config, channel, encoder, shutdown)
        self._subframe_sets: dict[Satellite, NavigationSubframeSet] = {}

    def handle(self, message: NavigationCollectorMessage) -> None:
        match message:
            case SubframeMessage():
                self._handle_subframe(message)

            case _:
                raise InvariantError(f"Unexpected message: {message}")

    def _handle_subframe(self, message: SubframeMessage) -> None:
        satellite = message.satellite
        if satellite.constellation not in self._constellations():
            return

        if satellite not in self._subframe_sets:
            self._subframe_sets[satellite] = NavigationSubframeSet()

        subframe_set = self._subframe_sets[satellite]
        subframe_set.handle_subframe(message.subframe)

        ephemeris = subframe_set.to_ephemeris(satellite, message.receiver_week)
        if ephemeris is None:
            return

        if not should_publish(
            subframe_set.last_published,
            ephemeris.toc,
            self._config.min_republish_interval,
        ):
            return

        self._publish(subframe_set, ephemeris)

    def _publish(
        self, subframe_set: NavigationSubframeSet, ephemeris: EphemerisMessage
    ) -> None:
        session = self._ensure_session(self._transmitted_at(ephemeris))
        invariant(
            ephemeris.satellite.constellation in session.constellations,
            f"[{ephemeris.satellite}] Not declared in the header of {session.path}",
        )

        try:
            session.write(ephemeris)
        except RecordEncodingError as e:
            logger.error(f"[{ephemeris.satellite}] Discarding ephemeris: {e}")
            return

        subframe_set.last_published = ephemeris.toc
        logger.info(f"[{ephemeris.satellite}] Published ephemeris: toc={ephemeris.toc}")

    def _transmitted_at(self, ephemeris: EphemerisMessage) -> Epoch:
        # Files rotate on the working time scale, like observation files.
        return to_timescale(
            from_week_and_time_of_week(ephemeris.week, ephemeris.transmission_time),
            TimeScale.GPST,
            self._config.timescale,
        )

    def _flush_on_shutdown(self) -> None:
        # Ephemerides are written as soon as they're complete.
        pass

    def _build_header(self, start: Epoch, epoch: Epoch) -> NavigationHeader:
        return NavigationHeader(
            revision=self._config.revision,
            program=PROGRAM_NAME,
            run_by=run_by(),
            date=creation_date(),
            agency=self._config.agency or "",
            constellations=self._constellations(),
        )

    def _constellations(self) -> frozenset[Constellation]:
        return self._config.constellations & NAVIGATION_CONSTELLATIONS
