"""This module contains the messages sent from the ingestion loop to the
collectors.

Unlike packets, messages are expressed in the collection's terms: epochs in the
working time scale, RINEX observables, decoded subframes.
"""

from dataclasses import dataclass

from .records import SignalObservation
from .subframes import Subframe
from .types import Epoch, Satellite


@dataclass(frozen=True, kw_only=True)
class MeasurementMessage:
    """A signal observation at an epoch."""

    epoch: Epoch
    observation: SignalObservation


@dataclass(frozen=True, kw_only=True)
class ClockMessage:
    """The receiver clock bias at an epoch."""

    epoch: Epoch

    # In seconds.
    bias: float


@dataclass(frozen=True, kw_only=True)
class EndOfEpochMessage:
    """Indicates that no more measurements will be sent for epochs up to and
    including ``epoch``."""

    epoch: Epoch


@dataclass(frozen=True, kw_only=True)
class ReceiverInfoMessage:
    """Describes the receiver, for observation file headers."""

    model: str
    firmware: str


@dataclass(frozen=True, kw_only=True)
class SubframeMessage:
    """A decoded navigation message subframe."""

    satellite: Satellite
    subframe: Subframe

    # The receiver's full GPS week number when the subframe was received.
    #
    # ``None`` if no measurement epoch has been received yet, in which case the
    # subframe's week can't be resolved.
    receiver_week: int | None


ObservationCollectorMessage = (
    MeasurementMessage | ClockMessage | EndOfEpochMessage | ReceiverInfoMessage
)

NavigationCollectorMessage = SubframeMessage
