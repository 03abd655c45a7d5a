import logging
import select
import socket
import ssl
import threading
from typing import List, Optional

from .irc import IRCCodec
from . import util


LOG = logging.getLogger(__name__)


class ConnectError(Exception):
    """Raised when a connection to the server can't be established."""


class TransportError(OSError):
    """Raised when reading from or writing to an established connection fails."""


class Transport:
    """A line-oriented connection to an IRC server, over a plain or TLS socket.

    Reads are buffered: a single :meth:`read_lines` call returns every complete
    line received so far, which for a TLS stream in particular may be several
    protocol lines at once.  Writes are encoded as UTF-8 and trimmed to the
    maximum line length allowed by RFC2812.

    Writes may come from any thread, so they are serialised by a lock; reads
    must only happen from one thread.
    """
    #: Codec for encoding/decoding IRC messages.
    codec = IRCCodec()
    #: Maximum bytes per ``recv()``
    RECV_SIZE = 4096
    #: RFC line length is 512 including \r\n
    MAX_LINE_BYTES = 510

    def __init__(self, sock: socket.socket, *, use_ssl: bool = False):
        self._socket = sock
        self.use_ssl = use_ssl
        self._buffer = bytearray()
        self._eof = False
        self._closed = False
        self._write_lock = threading.Lock()
        self._close_lock = threading.Lock()

    @classmethod
    def connect(cls, address: str, port: int, use_ssl: bool = False, *,
                verify_ssl: bool = False, timeout: Optional[float] = None) -> 'Transport':
        """Connect to *address*:*port*, raising :exc:`ConnectError` on failure."""
        LOG.debug('connecting to %s:%s (ssl=%s)...', address, port, use_ssl)
        try:
            sock = socket.create_connection((address, port), timeout=timeout)
            if use_ssl:
                context = ssl.create_default_context()
                if not verify_ssl:
                    context.check_hostname = False
                    context.verify_mode = ssl.CERT_NONE
                sock = context.wrap_socket(sock, server_hostname=address)
            # Reads only happen once select() says there's data, so blocking mode is fine
            sock.settimeout(None)
        except OSError as e:
            LOG.critical('unable to connect to %s:%s: %r', address, port, e)
            raise ConnectError(f'unable to connect to {address}:{port}: {e}') from e
        LOG.info('connected to %s:%s', address, port)
        return cls(sock, use_ssl=use_ssl)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_eof(self) -> bool:
        """True once the server has closed the connection (or we have)."""
        return self._eof or self._closed

    def wait_readable(self, timeout: float) -> bool:
        """Wait at most *timeout* seconds for something to read.

        Returns True immediately if complete lines are already buffered.
        """
        if b'\n' in self._buffer:
            return True
        if self.is_eof():
            return False
        if isinstance(self._socket, ssl.SSLSocket) and self._socket.pending() > 0:
            return True
        try:
            readable, _, _ = select.select([self._socket], [], [], timeout)
        except (OSError, ValueError) as e:
            if self._closed:
                return False
            raise TransportError(f'poll failed: {e}') from e
        return bool(readable)

    def read_lines(self) -> List[str]:
        """Read available data and return all complete lines, decoded.

        Returns an empty list if nothing complete arrived; check
        :meth:`is_eof` to tell whether the connection has closed.
        """
        if b'\n' not in self._buffer and not self.is_eof():
            data = self._recv()
            if data == b'':
                LOG.debug('connection closed by server')
                self._eof = True
            elif data is not None:
                self._buffer += data

        lines = []
        while b'\n' in self._buffer:
            line, _, rest = self._buffer.partition(b'\n')
            self._buffer = bytearray(rest)
            lines.append(self.codec.decode(bytes(line.rstrip(b'\r'))))
        # A partial line at EOF is the last thing we will ever get
        if self._eof and self._buffer:
            lines.append(self.codec.decode(bytes(self._buffer.rstrip(b'\r'))))
            self._buffer.clear()

        for line in lines:
            LOG.debug('>>> %s', line)
        return lines

    def _recv(self) -> Optional[bytes]:
        try:
            return self._socket.recv(self.RECV_SIZE)
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError, BlockingIOError):
            # Not a whole TLS record yet
            return None
        except OSError as e:
            if self._closed:
                return b''
            raise TransportError(f'read failed: {e}') from e

    def write_line(self, line: str):
        """Send *line* to the server, terminated with CRLF.

        Raises :exc:`TransportError` if the connection is closed or the write
        fails.
        """
        if self.is_eof():
            raise TransportError(f'cannot write to closed connection: {line!r}')

        # Embedded newlines would be treated as separate commands
        line = line.replace('\r', ' ').replace('\n', ' ')
        encoded = self.codec.encode(line)
        trimmed = util.truncate_utf8(encoded, self.MAX_LINE_BYTES)
        if len(trimmed) < len(encoded):
            LOG.warning(f"outgoing message trimmed from {len(encoded)} to {len(trimmed)} bytes")

        with self._write_lock:
            try:
                self._socket.sendall(trimmed + b'\r\n')
            except OSError as e:
                raise TransportError(f'write failed: {e}') from e
        LOG.debug('<<< %s', line)

    def close(self):
        """Close the connection.  Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            LOG.debug('error on socket shutdown', exc_info=True)
        self._socket.close()
        LOG.debug('connection closed')
