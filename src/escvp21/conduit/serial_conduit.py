"""
Implements a conduit over a serial port, using pyserial-asyncio to deliver the port's data on the event loop.
"""

import asyncio
import logging

import serial
import serial_asyncio
from serial.tools import list_ports

from escvp21.conduit.base import Conduit, ConduitError

logger = logging.getLogger(__name__)

# the ESC/VP21 serial line settings
default_serial_settings = {
    'baudrate': 19200,
    'bytesize': serial.EIGHTBITS,
    'parity': serial.PARITY_NONE,
    'stopbits': serial.STOPBITS_ONE,
}

DRAIN_POLL_INTERVAL = 0.01


class SerialProtocol(asyncio.Protocol):
    """ forwards the asyncio callbacks for a serial port to the owning conduit """

    def __init__(self, conduit: 'SerialConduit'):
        self.conduit = conduit

    def connection_made(self, transport):
        self.conduit._connection_made(transport)

    def data_received(self, data):
        self.conduit._received(bytes(data))

    def connection_lost(self, exc):
        self.conduit._connection_lost(exc)


class SerialConduit(Conduit):
    """
    A conduit that provides comms via a serial port.

    :param port: the device name of the port, or "auto" to use the first port found.
    :param drain_timeout: the longest time drain() waits for the output queue to empty, in seconds.
    :param serial_kwargs: passed to `serial.Serial`, overriding the ESC/VP21 line settings.
    """

    def __init__(self, port, drain_timeout=5, log=logger, **serial_kwargs):
        super().__init__()
        self.port = port
        self.drain_timeout = drain_timeout
        self.serial_kwargs = dict(default_serial_settings, **serial_kwargs)
        self.logger = log
        self._transport = None
        self._closed_waiter = None

    @property
    def target(self):
        return self.port

    @property
    def is_open(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    async def open(self):
        if self.is_open:
            return
        loop = asyncio.get_running_loop()
        try:
            port = detect_port(self.port)
            transport, _ = await serial_asyncio.create_serial_connection(
                loop, lambda: SerialProtocol(self), port, **self.serial_kwargs)
        except (serial.SerialException, OSError, ValueError) as e:
            raise ConduitError("unable to open serial port %s: %s" % (self.port, e)) from e
        self._transport = transport
        self._closed_waiter = loop.create_future()
        self.logger.info("serial port %s opened" % self.port)

    async def write(self, data: bytes):
        self.check_open()
        self.logger.debug("serial port %s sending %r" % (self.port, data))
        self._transport.write(data)

    async def flush(self):
        """
        Discards the data queued in the serial driver's output buffer.

        Data still held in the asyncio transport's write buffer is not discarded, since the transport
        offers no way to clear it. That buffer only fills when the driver queue is full, and drain()
        waits for both buffers to empty.
        """
        self.check_open()
        try:
            self._transport.serial.reset_output_buffer()
        except serial.SerialException as e:
            raise ConduitError("unable to flush %s: %s" % (self.port, e)) from e

    async def drain(self):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.drain_timeout
        while True:
            self.check_open()
            try:
                pending = self._transport.get_write_buffer_size() + self._transport.serial.out_waiting
            except serial.SerialException as e:
                raise ConduitError("unable to drain %s: %s" % (self.port, e)) from e
            if not pending:
                return
            if loop.time() >= deadline:
                raise ConduitError("serial port %s did not drain %d bytes within %ss" %
                                   (self.port, pending, self.drain_timeout))
            await asyncio.sleep(DRAIN_POLL_INTERVAL)

    async def close(self):
        transport, waiter = self._transport, self._closed_waiter
        if transport is None:
            return
        transport.close()
        if waiter is not None:
            await asyncio.shield(waiter)

    def _connection_made(self, transport):
        self._transport = transport
        self._opened()

    def _connection_lost(self, exc):
        self._transport = None
        waiter, self._closed_waiter = self._closed_waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_result(None)
        if exc is not None:
            self.logger.info("serial port %s lost: %s" % (self.port, exc))
            self._failed(exc)
        else:
            self.logger.info("serial port %s closed" % self.port)
        self._closed(exc)


def serial_port_info():
    """
    :return: a tuple of ListPortInfo for the ports present on this machine
    """
    return tuple(list_ports.comports())


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in serial_port_info():
        yield port[0]


def detect_port(port):
    """
    attempts to detect the given serial port. If the port is not auto, it is returned as is.
    otherwise, the first port found is returned.
    """
    if port == "auto":
        ports = tuple(serial_ports())
        if not ports:
            raise ValueError("Could not find a serial port. %s" % repr(serial_port_info()))
        return ports[0]
    return port
