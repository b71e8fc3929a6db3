import logging
from enum import Enum

from escvp21.support.backoff import Backoff
from escvp21.support.events import EventSource
from escvp21.support.mixins import CommonEqualityMixin, ReprMixin

logger = logging.getLogger(__name__)


class TransportState(Enum):
    """ The connection states of a transport. The value is also the name of the event fired on entering the state. """
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


class TransportEvent(CommonEqualityMixin, ReprMixin):
    """ base class for transport events. """
    name = None


class TransportStateEvent(TransportEvent):
    """ fired when the transport enters a new state. """
    state = None

    def __init__(self, previous: TransportState=None):
        self.previous = previous

    @property
    def name(self):
        return self.state.value


class TransportConnectingEvent(TransportStateEvent):
    """ A reconnection attempt is scheduled. """
    state = TransportState.CONNECTING


class TransportConnectedEvent(TransportStateEvent):
    """ The link is frame aligned and commands can be executed. """
    state = TransportState.CONNECTED


class TransportDisconnectedEvent(TransportStateEvent):
    """ The link is down or not yet synchronized. """
    state = TransportState.DISCONNECTED


class TransportErrorEvent(TransportEvent):
    """ The device reported an error. """
    name = 'error'

    def __init__(self, error):
        self.error = error


state_events = {
    TransportState.CONNECTING: TransportConnectingEvent,
    TransportState.CONNECTED: TransportConnectedEvent,
    TransportState.DISCONNECTED: TransportDisconnectedEvent,
}


class ConnectionStateMachine:
    """
    Tracks the connection state of a transport and applies the side effects of each transition.

    - entering CONNECTING logs that a reconnection attempt is scheduled.
    - entering CONNECTED resets the backoff.
    - entering DISCONNECTED asks the backoff to schedule the next reconnection attempt.

    Each transition fires the corresponding TransportStateEvent to `events`.
    Only the owning transport calls transition().

    :param events: the event source transport events are fired to
    :param backoff: the backoff controller that schedules reconnection
    """

    def __init__(self, events: EventSource, backoff: Backoff, log=logger):
        self.events = events
        self.backoff = backoff
        self.logger = log
        self._state = TransportState.DISCONNECTED

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is TransportState.CONNECTED

    def transition(self, state: TransportState):
        self.logger.info("Changing state to %s" % state.value)
        previous, self._state = self._state, state
        self.events.fire(state_events[state](previous))

        if state is TransportState.CONNECTING:
            self._on_connecting()
        elif state is TransportState.CONNECTED:
            self._on_connected()
        else:
            self._on_disconnected()
            # the countdown, new or already running, means a reconnection attempt is scheduled
            if self.backoff.in_progress:
                self.transition(TransportState.CONNECTING)

    def _on_connecting(self):
        self.logger.info("Connecting to projector...")

    def _on_connected(self):
        self.logger.info("Connected to projector")
        self.backoff.reset()

    def _on_disconnected(self):
        self.logger.info("Disconnected from projector")
        self.backoff.backoff()
