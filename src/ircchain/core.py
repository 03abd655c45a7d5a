import enum
import logging
import threading
import time
from typing import (
    Callable,
    List,
    Optional,
)

from .buffers import InputQueue, OutputThrottle, PendingMessage
from .dispatch import EventDispatcher
from .events import Event
from .handlers import DefaultHandlers, MagicHandlers
from .numerics import NumericTable
from .output import OutputAPI
from .transport import ConnectError, Transport, TransportError


LOG = logging.getLogger(__name__)
#: Human-readable account of traffic, separate from diagnostic logging
REPORT_LOG = logging.getLogger('ircchain.report')


class ConnectionState(enum.Enum):
    IDLE = 'idle'
    CONNECTING = 'connecting'
    LISTENING = 'listening'
    DEAD = 'dead'


#: Called with the exception and the line being handled when a handler fails
ErrorCallback = Callable[[BaseException, str], None]


class ConnectionManager(MagicHandlers, DefaultHandlers, OutputAPI):
    """A connection to an IRC server, run by three background threads.

    The connection is opened as soon as the object is created; a failure
    raises :exc:`~ircchain.transport.ConnectError` and leaves the object
    dead.  Handlers can then be registered with :meth:`prepend_handler`, until
    :meth:`start_listening` starts the threads:

    * the reader moves lines from the server into the input queue,
    * the dispatcher classifies queued lines and runs their handler chains,
    * the throttle sends queued private messages at a limited rate.

    Any of them can kill the connection: at EOF, on a transport error, or when
    a handler raises an exception.  A dead connection never reads or writes
    again; reconnecting means creating a new :class:`ConnectionManager`.

    :param address: Server hostname
    :param port: Server port
    :param username: Username reported to the server (default: first nickname)
    :param realname: Real name reported to the server (default: *username*)
    :param nicknames: Nicknames to try, in order, until one is accepted
    :param use_ssl: Connect with TLS
    :param verify_ssl: Verify the server's TLS certificate
    :param throttle_seconds: Minimum seconds between private message sends
    :param server_password: Sent with ``PASS`` before registering, if set
    :param poll_interval: Longest time, in seconds, a thread waits before
                          re-checking whether it should stop
    :param log: Logger to use instead of the module logger
    :param on_error: Called with ``(exception, line)`` when a handler fails
    :param transport_factory: Called as ``transport_factory(address, port,
                              use_ssl, verify_ssl=...)`` to open the connection
    :param numerics: Numeric reply table (default: the table shipped with
                     the package)
    :param clock: Monotonic time source for the output throttle
    """

    def __init__(self, address: str, port: int = 6667, *,
                 username: str = None,
                 realname: str = None,
                 nicknames: List[str],
                 use_ssl: bool = False,
                 verify_ssl: bool = False,
                 throttle_seconds: float = 1.0,
                 server_password: Optional[str] = None,
                 poll_interval: float = 0.05,
                 log: logging.Logger = None,
                 on_error: ErrorCallback = None,
                 transport_factory: Callable[..., Transport] = Transport.connect,
                 numerics: NumericTable = None,
                 clock: Callable[[], float] = time.monotonic):
        if not nicknames:
            raise ValueError('at least one nickname is required')

        self.address = address
        self.port = port
        self.nicknames = list(nicknames)
        self.username = username or self.nicknames[0]
        self.realname = realname or self.username
        self.use_ssl = use_ssl
        self.server_password = server_password
        self.poll_interval = poll_interval
        self.log = log or LOG
        self.on_error = on_error

        self._me = ''
        self._registered = False
        self._nick_index = 0
        self._attempted_nick = self.nicknames[0]

        self._state = ConnectionState.IDLE
        self._dead = False
        self._stop = threading.Event()
        self._stop_lock = threading.Lock()
        self._stopped = False
        self._threads: List[threading.Thread] = []

        self._input = InputQueue()
        self._throttle = OutputThrottle(throttle_seconds, clock=clock)
        self.dispatcher = EventDispatcher(numerics, log=log)
        self.setup_default_handlers()

        self._state = ConnectionState.CONNECTING
        try:
            self.transport = transport_factory(address, port, use_ssl, verify_ssl=verify_ssl)
        except ConnectError:
            self._dead = True
            self._state = ConnectionState.DEAD
            self._stop.set()
            raise

    @property
    def me(self) -> str:
        """Our nick, as confirmed by the server ('' until registered)."""
        return self._me

    @property
    def registered(self) -> bool:
        """Has the server welcomed us?"""
        return self._registered

    @property
    def dead(self) -> bool:
        return self._dead

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.DEAD if self._dead else self._state

    @property
    def throttle_seconds(self) -> float:
        return self._throttle.interval

    @throttle_seconds.setter
    def throttle_seconds(self, value: float):
        self._throttle.interval = value

    def prepend_handler(self, event_name: str, *handlers):
        """Put *handlers* ahead of everything already registered for *event_name*.

        Raises :exc:`~ircchain.dispatch.HandlerMutationError` once listening.
        """
        self.dispatcher.prepend(event_name, *handlers)

    def dispatch(self, event_name: str, *args) -> bool:
        """Run the handlers for *event_name*, e.g. for a custom event."""
        return self.dispatcher.dispatch(event_name, *args)

    def process_line(self, line: str) -> Optional[Event]:
        """Handle one line from the server in the calling thread."""
        return self.dispatcher.dispatch_line(line)

    def report(self, *lines: str):
        for line in lines:
            REPORT_LOG.info(line)

    def raw(self, line: str, report: bool = True) -> bool:
        """Write *line* to the server immediately, bypassing the throttle.

        Returns False, without writing anything, if the connection is dead; a
        failed write kills the connection.
        """
        if self._dead:
            self.log.warning('not sending to dead connection: %r', line)
            return False
        try:
            self.transport.write_line(line)
        except TransportError as e:
            self.log.critical('error writing to server: %s', e)
            self.stop_listening()
            return False
        if report:
            self.report(f'bot: {line}')
        return True

    def enqueue_privmsg(self, target: str, text: str, report: str = '') -> bool:
        """Queue a private message, to be sent by the throttle thread.

        Returns False, without queueing anything, if the connection is dead.
        """
        if self._dead:
            self.log.warning('not queueing message for dead connection: %s :%s', target, text)
            return False
        self._throttle.enqueue(target, text, report)
        return True

    def start_listening(self):
        """Start the background threads and begin registration.

        Does nothing if already listening, or if the connection is dead.
        """
        if self._state is ConnectionState.LISTENING or self._dead:
            return

        # Magic handlers go in last so they are first in their chains
        self.setup_magic_handlers()
        self.dispatcher.freeze()
        self._state = ConnectionState.LISTENING

        for name, loop in (('reader', self._read_loop),
                           ('dispatch', self._dispatch_loop),
                           ('throttle', self._throttle_loop)):
            thread = threading.Thread(target=loop, name=f'ircchain-{name}', daemon=True)
            self._threads.append(thread)
            thread.start()

        self.dispatch('outgoing_begin_connection', self.username, self.address, self.realname)

    def start_listening_forever(self):
        """Start listening, then block until the connection dies."""
        self.start_listening()
        # Wake up regularly so signal handlers get a chance to run
        while not self._stop.is_set():
            self._stop.wait(self.poll_interval)
        self.stop_listening()

    def stop_listening(self):
        """Kill the connection.  Safe to call more than once, and from any thread.

        Threads notice at their next wait; handlers already running are not
        waited for.
        """
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
        self.log.debug('stopping connection to %s:%s', self.address, self.port)
        self._dead = True
        self._state = ConnectionState.DEAD
        self._stop.set()
        self.transport.close()

    def graceful_shutdown(self, reason: str = 'Terminated by user', grace: float = 1.0):
        """Send ``QUIT``, give the server *grace* seconds to hang up, then stop."""
        if not self._dead:
            self.log.info('quitting: %s', reason)
            self.quit(reason)
            self._stop.wait(grace)
        self.stop_listening()

    def signal_handler(self, signum, frame):
        """Shut down gracefully; suitable for :func:`signal.signal`."""
        self.log.info('received signal %s, shutting down...', signum)
        self.graceful_shutdown()

    def _read_loop(self):
        while not self._stop.is_set():
            try:
                if not self.transport.wait_readable(self.poll_interval):
                    continue
                lines = self.transport.read_lines()
            except TransportError as e:
                if not self._stop.is_set():
                    self.log.critical('error reading from server: %s', e)
                    self.stop_listening()
                return

            for line in lines:
                self._input.push(line)

            if self.transport.is_eof():
                if not self._stop.is_set():
                    self.log.error('connection closed by server')
                    self.stop_listening()
                return

    def _dispatch_loop(self):
        while True:
            stopping = self._stop.is_set()
            # Lines that arrived before the connection died are still handled
            for line in self._input.swap(0.0 if stopping else self.poll_interval):
                if not self._handle_line(line):
                    return
            if stopping:
                return

    def _handle_line(self, line: str) -> bool:
        try:
            self.dispatcher.dispatch_line(line)
        except Exception as e:
            self.log.exception('error handling line: %r', line)
            if self.on_error is not None:
                self.on_error(e, line)
            self.stop_listening()
            return False
        return True

    def _throttle_loop(self):
        while not self._stop.is_set():
            if self._throttle.empty:
                self._throttle.wait(self.poll_interval)
                continue
            delay = self._throttle.delay()
            if delay > 0:
                self._stop.wait(min(delay, self.poll_interval))
                continue
            self._throttle.drain(self._send_privmsg)

    def _send_privmsg(self, target: str, message: PendingMessage):
        if self.raw(f'PRIVMSG {target} :{message.body}', report=False) and message.report:
            self.report(message.report)
