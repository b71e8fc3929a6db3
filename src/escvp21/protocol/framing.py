"""
Reassembles the bytes received from a device into frames, and hands each frame to the oldest reader waiting for one.
"""
import asyncio
import logging
from collections import deque

from escvp21.protocol.commands import FRAME_TERMINATOR

logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Accumulates received bytes and splits them into frames that end with a terminator.

    Readers register with schedule_read() and receive a future for the next frame. Frames are given to
    readers strictly in registration order, one frame per reader. A frame that completes before any reader
    is waiting is kept until one registers.

    drain() discards everything buffered and resolves every waiting reader with None.

    :param terminator: the byte sequence that ends a frame. It is kept in the frame text.
    :param encoding: the text encoding of a frame.
    """

    def __init__(self, terminator=FRAME_TERMINATOR, encoding='ascii', log=logger):
        self.terminator = terminator
        self.encoding = encoding
        self.logger = log
        self._rx = bytearray()
        self._frames = deque()      # completed frames without a reader
        self._pending_reads = deque()

    @property
    def pending_reads(self):
        return len(self._pending_reads)

    @property
    def buffered(self) -> bytes:
        """ the bytes received that are not yet part of a complete frame """
        return bytes(self._rx)

    @property
    def frames(self):
        """ the complete frames waiting for a reader """
        return tuple(self._frames)

    def bytes_received(self, data: bytes):
        self._rx.extend(data)
        self.logger.debug("received %r, now pending %r" % (data, bytes(self._rx)))
        self._handle_pending_data()

    def schedule_read(self) -> asyncio.Future:
        """
        Registers a reader for the next frame.
        :return: a future resolved with the frame text, or with None when the buffer is drained.
        """
        future = asyncio.get_running_loop().create_future()
        self._pending_reads.append(future)
        # a frame may have arrived before anyone was waiting for it
        self._handle_pending_data()
        return future

    def drain(self):
        """ discards buffered data and frames, and resolves all waiting readers with None. """
        self.logger.debug("drain rx queue, discarding %r and %d frames" % (bytes(self._rx), len(self._frames)))
        self._rx.clear()
        self._frames.clear()
        pending, self._pending_reads = self._pending_reads, deque()
        for future in pending:
            if not future.done():
                future.set_result(None)

    def _handle_pending_data(self):
        self._extract_frames()
        self._dispatch_frames()

    def _extract_frames(self):
        terminator = self.terminator
        while True:
            marker = self._rx.find(terminator)
            if marker == -1:
                return
            end = marker + len(terminator)
            line = self._rx[:end].decode(self.encoding, errors='replace')
            del self._rx[:end]
            self.logger.debug("processing response %r, remaining %r" % (line, bytes(self._rx)))
            self._frames.append(line)

    def _dispatch_frames(self):
        frames, pending = self._frames, self._pending_reads
        while frames and pending:
            future = pending.popleft()
            if future.done():
                # the reader went away, the frame goes to the next one
                continue
            future.set_result(frames.popleft())
