import os
import threading
import time

from ircchain.transport import TransportError


class TempEnvVars(object):
    """A context manager for temporarily changing the values of environment
    variables."""
    def __init__(self, changes):
        self.changes = changes
        self.restore = {}

    def __enter__(self):
        for k, v in self.changes.items():
            if k in os.environ:
                self.restore[k] = os.environ[k]
            os.environ[k] = v

    def __exit__(self, exc_type, exc_value, traceback):
        for k, v in self.changes.items():
            if k in self.restore:
                os.environ[k] = self.restore[k]
            else:
                del os.environ[k]


class FakeTransport:
    """Stands in for :class:`ircchain.transport.Transport` without a socket.

    Lines to "receive" are queued with :meth:`feed`, :meth:`feed_eof` ends the
    stream and :meth:`fail` makes the next read raise.  Written lines are kept
    in :attr:`sent`.
    """
    def __init__(self):
        self.sent = []
        self._incoming = []
        self._eof = False
        self._error = None
        self._closed = False
        self.close_count = 0
        self._cond = threading.Condition()

    # Test side

    def feed(self, *lines):
        with self._cond:
            self._incoming.extend(lines)
            self._cond.notify_all()

    def feed_eof(self):
        with self._cond:
            self._eof = True
            self._cond.notify_all()

    def fail(self, message='connection reset'):
        with self._cond:
            self._error = TransportError(message)
            self._cond.notify_all()

    def wait_for_sent(self, predicate, timeout=2.0):
        """Wait until *predicate* is true of the lines sent so far."""
        deadline = time.monotonic() + timeout
        with self._cond:
            while not predicate(list(self.sent)):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True

    # Transport side

    @property
    def closed(self):
        return self._closed

    def is_eof(self):
        return (self._eof and not self._incoming) or self._closed

    def wait_readable(self, timeout):
        with self._cond:
            if not (self._incoming or self._eof or self._error or self._closed):
                self._cond.wait(timeout)
            if self._closed:
                return False
            return bool(self._incoming or self._eof or self._error)

    def read_lines(self):
        with self._cond:
            if self._error is not None:
                raise self._error
            lines, self._incoming = self._incoming, []
            return lines

    def write_line(self, line):
        with self._cond:
            if self.is_eof():
                raise TransportError(f'cannot write to closed connection: {line!r}')
            self.sent.append(line)
            self._cond.notify_all()

    def close(self):
        with self._cond:
            self.close_count += 1
            self._closed = True
            self._cond.notify_all()
