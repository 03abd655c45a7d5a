import enum
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Optional,
    Tuple,
)

from .events import Event, EventType, MESSAGE_TYPES, classify
from . import numerics as numerics_


LOG = logging.getLogger(__name__)


class HandlerResult(enum.Enum):
    """What a handler tells the dispatcher about the rest of its chain."""
    #: The event was dealt with; don't run any more handlers for it
    HANDLED = 'handled'
    #: Carry on with the next handler in the chain
    CONTINUE = 'continue'

    @classmethod
    def of(cls, value):
        """Interpret a handler's return value.

        Only :attr:`HANDLED` (or ``True``, for plain functions) stops a chain;
        anything else, including ``None``, continues it.
        """
        if value is cls.HANDLED or value is True:
            return cls.HANDLED
        return cls.CONTINUE


HANDLED = HandlerResult.HANDLED
CONTINUE = HandlerResult.CONTINUE

Handler = Callable[..., Any]


class HandlerMutationError(Exception):
    """Raised when registering a handler after the dispatcher has been frozen."""


class EventDispatcher:
    """Registry of handler chains, keyed by event name.

    Each chain is an immutable tuple; registering a handler replaces the
    chain with a new tuple.  Once :meth:`freeze` has been called (which the
    connection does before its threads start) no more handlers can be
    registered, so chains can be read from any thread without locking.

    Incoming event names are ``incoming_<type>`` (see
    :class:`~ircchain.events.EventType`), ``incoming_numeric_<code>`` for
    numeric replies, and ``incoming_any`` for every raw line.  Outgoing helpers
    dispatch ``outgoing_<command>``.  Any other name can be used for custom
    events.

    :param numerics: Numeric reply table, for resolving names like
                     ``incoming_welcome`` to ``incoming_numeric_1``
    :param log: Logger to use instead of the module logger
    """
    #: Event run for every incoming line, before classification
    ANY = 'incoming_any'

    def __init__(self, numerics: numerics_.NumericTable = None, log: logging.Logger = None):
        self.numerics = numerics if numerics is not None else numerics_.load()
        self.log = log or LOG
        self._handlers: Dict[str, Tuple[Handler, ...]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        """Refuse any further handler registration."""
        self._frozen = True

    def normalize(self, event_name: str) -> str:
        """Rewrite ``incoming_<name>`` to ``incoming_numeric_<code>`` for known numeric names.

        >>> d = EventDispatcher(numerics_.NumericTable({'001': 'welcome'}))
        >>> d.normalize('incoming_welcome')
        'incoming_numeric_1'
        >>> d.normalize('incoming_msg')
        'incoming_msg'
        """
        prefix = 'incoming_'
        if event_name.startswith(prefix):
            code = self.numerics.code(event_name[len(prefix):])
            if code is not None:
                return f'incoming_numeric_{code}'
        return event_name

    def register(self, event_name: str, handler: Handler, at_front: bool = True):
        """Add *handler* to the chain for *event_name*.

        Handlers added with *at_front* (the default) run before everything
        already registered, so the most recent registration runs first.
        """
        if self._frozen:
            raise HandlerMutationError(f'cannot register handler for {event_name!r} while listening')
        if not callable(handler):
            raise TypeError(f'handler for {event_name!r} is not callable: {handler!r}')
        key = self.normalize(event_name)
        chain = self._handlers.get(key, ())
        self._handlers[key] = (handler,) + chain if at_front else chain + (handler,)

    def prepend(self, event_name: str, *handlers: Handler):
        """Put *handlers* at the front of the chain for *event_name*, keeping their relative order."""
        for handler in reversed(handlers):
            self.register(event_name, handler, at_front=True)

    def append(self, event_name: str, *handlers: Handler):
        """Put *handlers* at the back of the chain for *event_name*."""
        for handler in handlers:
            self.register(event_name, handler, at_front=False)

    def handlers(self, event_name: str) -> Tuple[Handler, ...]:
        return self._handlers.get(self.normalize(event_name), ())

    def __contains__(self, event_name):
        return bool(self.handlers(event_name))

    def dispatch(self, event_name: str, *args) -> bool:
        """Run the chain for *event_name* with *args*, returning True if a handler handled it.

        Numeric names are accepted as for :meth:`register`.  Handlers are
        called synchronously, in the calling thread.  Exceptions raised by a
        handler propagate to the caller.
        """
        chain = self._handlers.get(self.normalize(event_name))
        if not chain:
            return False
        self.log.debug('handling event %s via %r', event_name, chain)
        for handler in chain:
            if HandlerResult.of(handler(*args)) is HANDLED:
                return True
        return False

    def dispatch_numeric(self, numeric: int, text: str, fullactor: Optional[str] = None,
                         actor: Optional[str] = None, target: Optional[str] = None) -> bool:
        """Dispatch ``incoming_numeric_<numeric>`` as ``(text, args)``.

        *args* is a dict of ``fullactor``, ``actor`` and ``target``.  Numerics
        nobody handles are just logged.
        """
        event_name = f'incoming_numeric_{numeric}'
        if event_name not in self._handlers:
            self.log.info('Unknown raw %s from %s: %s', numeric, fullactor, text)
            return False
        args = {'fullactor': fullactor, 'actor': actor, 'target': target}
        return self.dispatch(event_name, text, args)

    def dispatch_event(self, event: Event) -> bool:
        """Dispatch a classified *event* with the arguments its handlers expect."""
        t = event.type
        name = event.event_name
        if t is EventType.PING:
            return self.dispatch(name, event.text)
        elif t is EventType.NUMERIC:
            return self.dispatch_numeric(event.numeric, event.text, event.servername, None, event.target)
        elif t is EventType.INVITE:
            return self.dispatch(name, event.fullname, event.nick, event.channel)
        elif t in MESSAGE_TYPES:
            # Notices come from servers sometimes
            nick = '' if event.from_server else event.nick
            fullname = nick if event.from_server else event.fullname
            return self.dispatch(name, fullname, nick, event.target, event.text)
        elif t is EventType.MODE:
            nick = '' if event.from_server else event.nick
            return self.dispatch(name, event.origin, nick, event.target, event.text, ' '.join(event.targets))
        elif t is EventType.TOPIC_CHANGE:
            return self.dispatch(name, event.fullname, event.nick, event.channel, event.text)
        elif t is EventType.JOIN:
            return self.dispatch(name, event.fullname, event.nick, event.channel)
        elif t is EventType.PART:
            return self.dispatch(name, event.fullname, event.nick, event.channel, event.text)
        elif t is EventType.KICK:
            return self.dispatch(name, event.fullname, event.nick, event.channel, event.target, event.text)
        elif t in (EventType.QUIT, EventType.NICK):
            return self.dispatch(name, event.fullname, event.nick, event.text)
        elif t is EventType.ERROR:
            return self.dispatch(name, event.text)
        else:
            self.log.warning('Unknown line: %r', event.raw)
            return self.dispatch(name, event.raw)

    def dispatch_line(self, line: str) -> Optional[Event]:
        """Process one raw incoming line.

        ``incoming_any`` handlers see the raw line first and can stop all
        further processing of it, in which case None is returned.  Otherwise
        the line is classified and dispatched, and the event is returned.
        """
        if self.dispatch(self.ANY, line):
            return None
        event = classify(line, self.numerics)
        self.dispatch_event(event)
        return event
