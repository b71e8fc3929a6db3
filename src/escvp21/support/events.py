import logging

logger = logging.getLogger(__name__)


class EventSource(object):
    """
    An ordered list of handlers that are each called with the arguments of fire().

    Handlers are invoked synchronously, in registration order. A handler that raises
    does not prevent the remaining handlers from being notified; the exception is logged.
    """

    def __init__(self, log=logger):
        self._handlers = []
        self.logger = log

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def _fire(self, *args, **kwargs):
        # iterate a copy so handlers may unsubscribe while being notified
        for handler in tuple(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception as e:
                self.logger.exception("event handler %r failed: %s" % (handler, e))
