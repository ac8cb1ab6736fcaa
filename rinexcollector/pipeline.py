import logging
import threading
from typing import Iterable

from .channel import Channel
from .collector import Collector
from .config import Config
from .ingestion import Ingestion
from .messages import NavigationCollectorMessage, ObservationCollectorMessage
from .navigation_collector import NAVIGATION_CONSTELLATIONS, NavigationCollector
from .observation_collector import ObservationCollector
from .packets import Packet
from .rinex import RinexEncoder
from .session import Encoder

logger = logging.getLogger(__name__)

# How long to wait for each collector to finish once shutdown is requested, in
# seconds.
_JOIN_TIMEOUT = 10.0


class Pipeline:
    """Connects the ingestion loop to the collectors.

    Each enabled collector gets its own channel and thread. All of them share a
    shutdown event: once it's set, ingestion stops and the collectors finish
    handling what they've been sent, flush and close their files.
    """

    def __init__(self, config: Config, encoder: Encoder | None = None) -> None:
        self.shutdown = threading.Event()

        if encoder is None:
            encoder = RinexEncoder()

        self._collectors: list[Collector] = []
        observations: Channel[ObservationCollectorMessage] | None = None
        navigation: Channel[NavigationCollectorMessage] | None = None

        if config.observations:
            observations = Channel(config.channel_capacity, "observation channel")
            self._collectors.append(
                ObservationCollector(config, observations, encoder, self.shutdown)
            )

        if config.navigation:
            if config.constellations & NAVIGATION_CONSTELLATIONS:
                navigation = Channel(config.channel_capacity, "navigation channel")
                self._collectors.append(
                    NavigationCollector(config, navigation, encoder, self.shutdown)
                )
            else:
                logger.warning(
                    "Navigation files are only supported for GPS and QZSS,"
                    " not collecting navigation data"
                )

        self._channels = [c for c in (observations, navigation) if c is not None]
        self._ingestion = Ingestion(config, self.shutdown, observations, navigation)

    @property
    def collectors(self) -> list[Collector]:
        return self._collectors

    def run(self, packets: Iterable[Packet | None]) -> None:
        """Collects ``packets`` until they run out, shutdown is requested, or an
        exception is raised, then stops the collectors."""

        for collector in self._collectors:
            collector.start()

        try:
            self._ingestion.run(packets)
        finally:
            self.stop()

    def stop(self) -> None:
        self.shutdown.set()

        for collector in self._collectors:
            collector.join(_JOIN_TIMEOUT)

        # Unblocks anything still sending.
        for channel in self._channels:
            channel.close()
