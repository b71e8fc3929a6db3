"""
The ESC/VP21 transport: executes commands over a conduit one at a time, pairs each with the next response frame,
and keeps the link usable by resynchronizing after timeouts and reconnecting after the device goes away.
"""
import asyncio
import logging

from escvp21.conduit.base import Conduit, ConduitClosedEvent, ConduitDataEvent, ConduitError, ConduitErrorEvent, \
    ConduitOpenedEvent
from escvp21.connection import ConnectionStateMachine, TransportErrorEvent, TransportState
from escvp21.protocol.commands import PROBE_COMMAND, Command, CommandSequence, is_error_response, \
    is_synchronized_response, terminate
from escvp21.protocol.framing import FrameBuffer
from escvp21.protocol.tasks import SequentialTaskQueue, TaskQueueClosedError
from escvp21.settings import TransportSettings
from escvp21.support.backoff import Backoff
from escvp21.support.events import EventSource
from escvp21.support.retry_strategy import ExponentialRetryStrategy

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """ base class for errors raised by a transport. """


class NotConnectedError(TransportError):
    """ A command was submitted while the transport was not connected. """


class CommandTimeoutError(TransportError, TimeoutError):
    """ No response arrived for a command within its timeout, on every attempt. """


class UnsupportedCommandError(TransportError):
    """ The device replied to a command with an error. """


class Transport:
    """
    Executes ESC/VP21 commands over a conduit.

    Commands from all callers are run one at a time, in submission order, since the link has no way to tell
    which command a response belongs to other than its order. Each command is retried after a timeout,
    once the link has been resynchronized.

    The transport starts disconnected. When the conduit opens, and whenever it closes, reconnection
    attempts are scheduled with an exponential backoff. An attempt that resynchronizes successfully
    makes the transport connected.

    Transport events (TransportConnectingEvent, TransportConnectedEvent, TransportDisconnectedEvent and
    TransportErrorEvent) are fired to `events`.

    :param conduit: the byte stream to the device
    :param settings: timings and retry limits. Defaults to TransportSettings().
    """

    def __init__(self, conduit: Conduit, settings: TransportSettings=None, log=logger):
        self.conduit = conduit
        self.settings = settings if settings is not None else TransportSettings()
        self.logger = log
        self.events = EventSource()
        s = self.settings
        self._backoff = Backoff(ExponentialRetryStrategy(s.backoff_initial_delay, s.backoff_max_delay,
                                                         s.backoff_factor), log)
        self._backoff.started += self._on_backoff_started
        self._backoff.ready += self._on_backoff_ready
        self._connection = ConnectionStateMachine(self.events, self._backoff, log)
        self._frames = FrameBuffer(log=log)
        self._commands = CommandSequence()
        self._tasks = SequentialTaskQueue(log)
        self._reconnecting = None
        self._conduit_handlers = {
            ConduitDataEvent: self._on_conduit_data,
            ConduitOpenedEvent: self._on_conduit_opened,
            ConduitClosedEvent: self._on_conduit_closed,
            ConduitErrorEvent: self._on_conduit_failed,
        }

    @classmethod
    def for_serial_port(cls, port, settings: TransportSettings=None, log=logger):
        """ creates a transport over a serial port, using the line settings from `settings`. """
        from escvp21.conduit.serial_conduit import SerialConduit
        settings = settings if settings is not None else TransportSettings()
        return cls(SerialConduit(port, **settings.serial_kwargs()), settings, log)

    @property
    def state(self) -> TransportState:
        return self._connection.state

    @property
    def connected(self) -> bool:
        return self._connection.connected

    @property
    def backoff(self) -> Backoff:
        return self._backoff

    async def open(self):
        """
        Opens the conduit. The transport becomes connected once the link has been synchronized.
        Raises ConduitError if the conduit cannot be opened.
        """
        if self._on_conduit_event not in self.conduit.events.handlers():
            self.conduit.events += self._on_conduit_event
        await self.conduit.open()

    async def close(self):
        """
        Stops reconnecting, fails any queued commands and closes the conduit.
        """
        self._backoff.close()
        reconnecting, self._reconnecting = self._reconnecting, None
        if reconnecting is not None:
            reconnecting.cancel()
        await self._tasks.close()
        self._frames.drain()
        try:
            await self.conduit.close()
        finally:
            self.conduit.events -= self._on_conduit_event
            if self.state is not TransportState.DISCONNECTED:
                self._connection.transition(TransportState.DISCONNECTED)

    async def execute(self, command_text, timeout=None):
        """
        Sends a command and waits for its response.

        :param command_text: the command, without the terminating carriage return.
        :param timeout: how long to wait for the response on each attempt, in seconds.
        :return: the response frame, including the trailing ':'
        :raises NotConnectedError: if the transport is not connected.
        :raises CommandTimeoutError: if no response arrived on any attempt.
        :raises UnsupportedCommandError: if the device rejected the command.
        :raises ConduitError: if the command could not be written.
        """
        if not self.connected:
            raise NotConnectedError("Not connected")
        if timeout is None:
            timeout = self.settings.command_timeout
        command = self._commands.next(terminate(command_text), timeout)
        return await self._tasks.push(self._execute, command)

    async def _execute(self, command: Command):
        response = None
        for attempt in range(self.settings.command_attempts):
            self.logger.debug("Begin processing command %s - attempt #%d" % (command, attempt))
            response = await self._execute_once(command)
            if response is not None:
                break
            self.logger.warning("Command %s timed out." % (command,))
            await self.resynchronize()

        self.logger.debug("Done processing command %s: response=%r" % (command, response))
        if response is None:
            raise CommandTimeoutError("Command %s timed out." % (command,))
        if is_error_response(response):
            raise UnsupportedCommandError("Unsupported command %r" % command.payload)
        return response

    async def _execute_once(self, command: Command):
        """
        Sends the command once and waits for the next frame until the command's timeout.
        :return: the frame, or None if it timed out or the buffer was drained while waiting.
        """
        loop = asyncio.get_running_loop()
        read = self._frames.schedule_read()
        deadline = loop.time() + command.timeout
        try:
            await self._send(command)
        except BaseException:
            # nothing was asked of the device, so no frame is owed to this reader
            read.cancel()
            raise
        remaining = deadline - loop.time()
        if remaining > 0 and not read.done():
            await asyncio.wait({read}, timeout=remaining)
        # a timed out read stays queued; the next drain resolves it
        return read.result() if read.done() else None

    async def _send(self, command: Command):
        self.logger.debug("Sending %s" % (command,))
        await self.conduit.write(command.encode())

    async def resynchronize(self):
        """
        Discards stale data and proves the link is frame aligned by probing the device.
        Must run inside the task queue, so that it does not interleave with a command.

        :return: True if the probe was answered with a single well formed frame.
        """
        self.logger.debug("Synchronizing with projector...")
        attempts = self.settings.sync_attempts
        synchronized = False
        for attempt in range(attempts):
            try:
                await self._drain_and_flush()
                synchronized = await self._send_probe()
            except ConduitError as e:
                self.logger.debug("Synchronization attempt #%d failed: %s" % (attempt, e))
                synchronized = False
            if synchronized:
                break
            if attempt < attempts - 1:
                await asyncio.sleep(self.settings.sync_pause)

        if synchronized:
            self.logger.debug("Synchronization completed")
        else:
            self.logger.warning("Synchronization FAILED after %d attempts" % attempts)
        return synchronized

    async def _drain_and_flush(self):
        self._frames.drain()
        await self.conduit.flush()
        await self.conduit.drain()

    async def _send_probe(self):
        self.logger.debug("Sending empty command to poll status")
        probe = self._commands.next(PROBE_COMMAND, self.settings.probe_timeout)
        response = await self._execute_once(probe)
        if response is None:
            self.logger.debug("Probe %s timed out" % (probe,))
            return False
        if is_error_response(response):
            self.logger.debug("Probe %s was rejected" % (probe,))
            return False
        return is_synchronized_response(response)

    def _on_conduit_event(self, event):
        handler = self._conduit_handlers.get(type(event))
        if handler is not None:
            handler(event)

    def _on_conduit_data(self, event: ConduitDataEvent):
        self._frames.bytes_received(event.data)

    def _on_conduit_opened(self, event: ConduitOpenedEvent):
        self.logger.info("Conduit %s opened" % self.conduit.target)
        self._connection.transition(TransportState.DISCONNECTED)

    def _on_conduit_closed(self, event: ConduitClosedEvent):
        self.logger.info("Conduit %s closed: %s" % (self.conduit.target, event.reason))
        self._connection.transition(TransportState.DISCONNECTED)

    def _on_conduit_failed(self, event: ConduitErrorEvent):
        self.logger.error("Conduit %s signaled error: %s" % (self.conduit.target, event.error))
        self.events.fire(TransportErrorEvent(event.error))

    def _on_backoff_started(self, delay, attempt):
        self.logger.info("Attempting to reconnect in %s seconds." % delay)

    def _on_backoff_ready(self, delay, attempt):
        if self._reconnecting is not None and not self._reconnecting.done():
            # the running attempt schedules another when it ends without connecting
            self.logger.debug("Reconnection attempt already running")
            return
        self._reconnecting = asyncio.get_running_loop().create_task(self._reconnect())

    async def _reconnect(self):
        """
        A single reconnection attempt. When it ends without the transport connected and without a countdown
        running, the transport is made disconnected, which schedules the next attempt.
        """
        try:
            await self._attempt_reconnect()
        except Exception as e:
            self.logger.error("Reconnection attempt failed: %s" % (e,), exc_info=e)
        finally:
            if not (self.connected or self._backoff.in_progress or self._backoff.closed):
                self._connection.transition(TransportState.DISCONNECTED)

    async def _attempt_reconnect(self):
        """
        Reopens the conduit if it was closed; its opened notification then schedules the synchronization.
        Otherwise the link is synchronized and the transport made connected.
        """
        if not self.conduit.is_open:
            try:
                await self.conduit.open()
            except ConduitError as e:
                self.logger.info("Unable to open %s: %s" % (self.conduit.target, e))
                self._connection.transition(TransportState.DISCONNECTED)
            return

        try:
            synchronized = await self._tasks.push(self.resynchronize)
        except TaskQueueClosedError:
            return
        if self.conduit.is_open:
            self._connection.transition(TransportState.CONNECTED if synchronized else TransportState.DISCONNECTED)
