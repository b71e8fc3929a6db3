from abc import abstractmethod

from escvp21.support.events import EventSource
from escvp21.support.mixins import CommonEqualityMixin, ReprMixin


class ConduitError(IOError):
    """ Indicates an I/O failure on a conduit. """


class ConduitClosedError(ConduitError):
    """ Raised when reading from or writing to a conduit that is not open. """


class ConduitEvent(CommonEqualityMixin, ReprMixin):
    """ base class for conduit notifications. """


class ConduitOpenedEvent(ConduitEvent):
    """ The conduit was opened and can be written to. """


class ConduitClosedEvent(ConduitEvent):
    """ The conduit was closed, either on request or because the device went away. """
    def __init__(self, reason=None):
        self.reason = reason


class ConduitErrorEvent(ConduitEvent):
    """ The device reported an error. """
    def __init__(self, error):
        self.error = error


class ConduitDataEvent(ConduitEvent):
    """ Bytes were received from the device. """
    def __init__(self, data: bytes):
        self.data = data


class Conduit:
    """
    A conduit is a bi-directional byte stream to a device. Writing, flushing and draining are coroutines;
    incoming data and changes in the open state are posted as ConduitEvent instances to `events`.
    """

    def __init__(self):
        self.events = EventSource()

    @property
    @abstractmethod
    def target(self):
        """ the endpoint this conduit communicates with """
        raise NotImplementedError

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """ determines if this conduit is open. When open, data can be written. """
        raise NotImplementedError

    @abstractmethod
    async def open(self):
        """
        Opens the conduit. Fires ConduitOpenedEvent on success.
        Raises ConduitError if the device cannot be opened.
        """
        raise NotImplementedError

    @abstractmethod
    async def write(self, data: bytes):
        """ queues the data for sending. Raises ConduitError on failure. """
        raise NotImplementedError

    @abstractmethod
    async def flush(self):
        """ discards any data written but not yet sent. """
        raise NotImplementedError

    @abstractmethod
    async def drain(self):
        """ waits until all written data has been physically sent. """
        raise NotImplementedError

    @abstractmethod
    async def close(self):
        """ closes the conduit. Fires ConduitClosedEvent if it was open. """
        raise NotImplementedError

    def check_open(self):
        if not self.is_open:
            raise ConduitClosedError("conduit %s is not open" % (self.target,))

    def _opened(self):
        self.events.fire(ConduitOpenedEvent())

    def _closed(self, reason=None):
        self.events.fire(ConduitClosedEvent(reason))

    def _failed(self, error):
        self.events.fire(ConduitErrorEvent(error))

    def _received(self, data):
        self.events.fire(ConduitDataEvent(data))
