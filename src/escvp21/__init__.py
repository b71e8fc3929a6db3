"""


ESC/VP21 Transport

A command/response transport for the ESC/VP21 control protocol spoken by Epson projectors over a serial line.

- Conduit: abstraction of the byte stream to the device. SerialConduit opens a serial port with pyserial-asyncio
  and posts opened/closed/error/data events.
- Transport: binds a conduit and executes commands on it.
    - commands are queued and sent one at a time. The response to a command is the next frame received,
      a frame being the text up to and including the next ':'.
    - a command that gets no response within its timeout is sent again, up to 3 times. Before each retry the
      link is resynchronized: buffered data is discarded and a probe command (`#get input`) must be answered
      with exactly one frame.
    - the response `ERR` fails the command with UnsupportedCommandError.
- Connection state: disconnected, connecting or connected. Opening the conduit, or the conduit closing, makes
  the transport disconnected and schedules a reconnection attempt with an exponential backoff (0.1s doubling up
  to 60s). An attempt reopens the conduit if needed and resynchronizes; success makes the transport connected
  and resets the backoff.
- Settings: timeouts, attempt counts and line settings, optionally loaded from layered configuration files.


Everything runs on a single asyncio event loop. Device notifications are handled synchronously as they arrive,
and commands are executed by a single worker task.

"""
from escvp21.conduit.base import Conduit, ConduitError, ConduitClosedError
from escvp21.connection import TransportState
from escvp21.settings import TransportSettings, configure
from escvp21.transport import Transport, TransportError, NotConnectedError, CommandTimeoutError, \
    UnsupportedCommandError

__all__ = [
    'Conduit', 'ConduitError', 'ConduitClosedError',
    'TransportState', 'TransportSettings', 'configure',
    'Transport', 'TransportError', 'NotConnectedError', 'CommandTimeoutError', 'UnsupportedCommandError',
]
