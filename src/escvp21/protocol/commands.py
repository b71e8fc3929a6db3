"""
ESC/VP21 wire constants and the command value passed through the execution pipeline.
"""
import itertools
from collections import namedtuple

# appended to every command sent
COMMAND_TERMINATOR = '\r'

# ends every response frame, and is kept in the decoded frame text
FRAME_TERMINATOR = b':'

# prefix of the response to a command the device does not accept
ERROR_RESPONSE = 'ERR\r:'

# a status query that is cheap for the device to answer, used to prove frame alignment
PROBE_COMMAND = '#get input \r'
PROBE_TIMEOUT = 1

DEFAULT_TIMEOUT = 10


class Command(namedtuple('Command', ['sequence_id', 'payload', 'timeout'])):
    """
    A command queued for execution. The sequence id orders commands for logging;
    it is never sent to the device, and responses are paired with commands by arrival order alone.
    """
    __slots__ = ()

    def encode(self) -> bytes:
        return self.payload.encode('ascii')

    def __str__(self):
        return "#%d %r" % (self.sequence_id, self.payload)


class CommandSequence:
    """ hands out commands with monotonically increasing sequence ids """

    def __init__(self, start=0):
        self._ids = itertools.count(start)

    def next(self, payload, timeout) -> Command:
        return Command(next(self._ids), payload, timeout)


def terminate(command_text):
    """
    >>> terminate('PWR?')
    'PWR?\\r'
    """
    return command_text + COMMAND_TERMINATOR


def is_error_response(response):
    """
    >>> is_error_response('ERR\\r:')
    True
    >>> is_error_response('PWR=01\\r:')
    False
    """
    return response.startswith(ERROR_RESPONSE)


def is_synchronized_response(response):
    """
    Determines if a probe response proves the link is frame aligned: there must be a response,
    and its first frame terminator must be the final character.

    >>> is_synchronized_response('ABC:')
    True
    >>> is_synchronized_response('ABC:XY:')
    False
    """
    if not response:
        return False
    terminator = FRAME_TERMINATOR.decode('ascii')
    return response.find(terminator) == len(response) - 1
