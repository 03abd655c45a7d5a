"""Classification of raw IRC lines into typed events.

:func:`classify` is pure: it does no I/O and touches no shared state, so the
dispatch loop can call it without holding any lock.
"""
import enum
from typing import (
    Optional,
    Tuple,
)

import attr

from .irc import IRCMessage, IRCParseError, IRCUser
from . import numerics as numerics_
from . import util


class EventType(enum.Enum):
    PING = 'ping'
    NUMERIC = 'numeric'
    INVITE = 'invite'
    MSG = 'msg'
    CTCP = 'ctcp'
    ACT = 'act'
    NOTICE = 'notice'
    CTCPREPLY = 'ctcpreply'
    MODE = 'mode'
    TOPIC_CHANGE = 'topic_change'
    JOIN = 'join'
    PART = 'part'
    KICK = 'kick'
    QUIT = 'quit'
    NICK = 'nick'
    ERROR = 'error'
    MISCELLANY = 'miscellany'

    @property
    def event_name(self):
        """Name handlers are registered under, e.g. ``incoming_msg``."""
        return 'incoming_' + self.value


#: Event types that share the ``(fullname, nick, target, text)`` handler layout
MESSAGE_TYPES = frozenset({
    EventType.MSG,
    EventType.CTCP,
    EventType.ACT,
    EventType.NOTICE,
    EventType.CTCPREPLY,
})


def _optional_str():
    return attr.ib(default=None, validator=attr.validators.optional(attr.validators.instance_of(str)))


@attr.s(frozen=True, slots=True)
class Event:
    """One classified line from the server.

    Which attributes are populated depends on :attr:`type`:

    * *fullname*, *nick*: the origin, for events caused by a user
    * *servername*: the origin, for events caused by a server
    * *channel*: the channel concerned, if any
    * *target*: the first parameter of a message/notice/mode (a channel or
      nick), the invitee of an invite, or the nick kicked by a kick
    * *targets*: objects of a mode change or a kick
    * *text*: message body, reason, new nick, mode string or ping token;
      the whole raw line for :attr:`EventType.MISCELLANY`
    * *numeric*, *name*: code and symbolic name of a numeric reply

    *parent* is the more general classification this event was narrowed
    from, e.g. an ``act`` event's parent is the ``ctcp`` event, whose parent
    is the plain ``msg`` event.
    """
    type: EventType = attr.ib(validator=attr.validators.instance_of(EventType))
    raw: str = attr.ib(validator=attr.validators.instance_of(str))
    fullname: Optional[str] = _optional_str()
    nick: Optional[str] = _optional_str()
    servername: Optional[str] = _optional_str()
    channel: Optional[str] = _optional_str()
    target: Optional[str] = _optional_str()
    targets: Tuple[str, ...] = attr.ib(default=(), converter=tuple)
    text: Optional[str] = _optional_str()
    numeric: Optional[int] = attr.ib(default=None,
                                     validator=attr.validators.optional(attr.validators.instance_of(int)))
    name: Optional[str] = _optional_str()
    parent: Optional['Event'] = attr.ib(default=None, repr=False)

    @classmethod
    def extend(cls, event, event_type, **changes):
        """Create a narrower classification of *event*, with *event* as its parent."""
        return attr.evolve(event, type=event_type, parent=event, **changes)

    @property
    def event_name(self):
        return self.type.event_name

    @property
    def pm(self):
        """Is this a private message, i.e. targeted at a user rather than a channel?"""
        return self.target is not None and not util.is_channel(self.target)

    @property
    def from_server(self):
        """Is the origin a server rather than a user?"""
        return self.servername is not None

    @property
    def origin(self):
        """The raw origin of the event, whether a user or a server."""
        return self.fullname or self.servername

    def to_line(self) -> str:
        """Re-serialize the event as a protocol line.

        Classifying the result gives an event of the same :attr:`type`.
        """
        t = self.type
        if t is EventType.MISCELLANY:
            return self.text
        elif t is EventType.NUMERIC:
            command, params = f'{self.numeric:03d}', [self.target or '*']
            if self.text:
                params.append(self.text)
        elif t is EventType.PING:
            command, params = 'PING', [self.text]
        elif t is EventType.INVITE:
            command, params = 'INVITE', [self.target, self.channel]
        elif t is EventType.MSG:
            command, params = 'PRIVMSG', [self.target, self.text]
        elif t is EventType.CTCP:
            command, params = 'PRIVMSG', [self.target, f'\x01{self.text}\x01']
        elif t is EventType.ACT:
            command, params = 'PRIVMSG', [self.target, f'\x01ACTION {self.text}\x01']
        elif t is EventType.NOTICE:
            command, params = 'NOTICE', [self.target, self.text]
        elif t is EventType.CTCPREPLY:
            command, params = 'NOTICE', [self.target, f'\x01{self.text}\x01']
        elif t is EventType.MODE:
            command, params = 'MODE', [self.target, self.text] + list(self.targets)
        elif t is EventType.TOPIC_CHANGE:
            command, params = 'TOPIC', [self.channel, self.text]
        elif t is EventType.JOIN:
            command, params = 'JOIN', [self.channel]
        elif t is EventType.PART:
            command, params = 'PART', [self.channel, self.text]
        elif t is EventType.KICK:
            command, params = 'KICK', [self.channel, ','.join(self.targets), self.text]
        elif t is EventType.QUIT:
            command, params = 'QUIT', [self.text]
        elif t is EventType.NICK:
            command, params = 'NICK', [self.text]
        else:
            command, params = 'ERROR', [self.text]
        return IRCMessage.create(command, params, prefix=self.origin).raw


def _origin(prefix):
    """Split a message prefix into the origin fields of an :class:`Event`."""
    if prefix is None:
        return {}
    user = IRCUser.parse(prefix)
    if user.is_server:
        return {'servername': prefix}
    return {'fullname': prefix, 'nick': user.nick}


def _ctcp_body(text):
    """Get the inside of a CTCP-quoted message, or None if it isn't CTCP."""
    if len(text) >= 2 and text.startswith('\x01') and text.endswith('\x01'):
        return text[1:-1]
    return None


def _classify_numeric(msg, table):
    code = int(msg.command)
    target, *rest = msg.pad_params(1)
    return Event(EventType.NUMERIC, msg.raw,
                 servername=msg.prefix,
                 target=target,
                 text=' '.join(rest),
                 numeric=code,
                 name=table.name(code))


def _classify_ping(msg, origin):
    if not msg.params:
        return None
    return Event(EventType.PING, msg.raw, text=msg.params[-1], **origin)


def _classify_error(msg, origin):
    text = msg.params[-1] if msg.params else ''
    return Event(EventType.ERROR, msg.raw, text=text, **origin)


def _classify_invite(msg, origin):
    if len(msg.params) < 2:
        return None
    target, channel = msg.params[:2]
    return Event(EventType.INVITE, msg.raw, target=target, channel=channel, **origin)


def _classify_privmsg(msg, origin):
    if len(msg.params) < 2:
        return None
    target, text = msg.params[0], msg.params[-1]
    channel = target if util.is_channel(target) else None
    event = Event(EventType.MSG, msg.raw, target=target, channel=channel, text=text, **origin)
    body = _ctcp_body(text)
    if body is None:
        return event
    event = Event.extend(event, EventType.CTCP, text=body)
    command, _, data = body.partition(' ')
    if command.upper() == 'ACTION':
        event = Event.extend(event, EventType.ACT, text=data)
    return event


def _classify_notice(msg, origin):
    if len(msg.params) < 2:
        return None
    target, text = msg.params[0], msg.params[-1]
    channel = target if util.is_channel(target) else None
    event = Event(EventType.NOTICE, msg.raw, target=target, channel=channel, text=text, **origin)
    body = _ctcp_body(text)
    if body is None:
        return event
    return Event.extend(event, EventType.CTCPREPLY, text=body)


def _classify_mode(msg, origin):
    if len(msg.params) < 2:
        return None
    target, modes, *objects = msg.params
    channel = target if util.is_channel(target) else None
    return Event(EventType.MODE, msg.raw, target=target, channel=channel, text=modes,
                 targets=objects, **origin)


def _classify_topic(msg, origin):
    if not msg.params:
        return None
    channel, text = msg.pad_params(2, '')
    return Event(EventType.TOPIC_CHANGE, msg.raw, channel=channel, text=text, **origin)


def _classify_join(msg, origin):
    if not msg.params:
        return None
    return Event(EventType.JOIN, msg.raw, channel=msg.params[0], **origin)


def _classify_part(msg, origin):
    if not msg.params:
        return None
    channel, text = msg.pad_params(2, '')
    return Event(EventType.PART, msg.raw, channel=channel, text=text, **origin)


def _classify_kick(msg, origin):
    if len(msg.params) < 2:
        return None
    channel, target, text = msg.pad_params(3, '')
    return Event(EventType.KICK, msg.raw, channel=channel, target=target,
                 targets=target.split(','), text=text, **origin)


def _classify_quit(msg, origin):
    (text,) = msg.pad_params(1, '')
    return Event(EventType.QUIT, msg.raw, text=text, **origin)


def _classify_nick(msg, origin):
    if not msg.params:
        return None
    return Event(EventType.NICK, msg.raw, text=msg.params[-1], **origin)


_CLASSIFIERS = {
    'PING': _classify_ping,
    'ERROR': _classify_error,
    'INVITE': _classify_invite,
    'PRIVMSG': _classify_privmsg,
    'NOTICE': _classify_notice,
    'MODE': _classify_mode,
    'TOPIC': _classify_topic,
    'JOIN': _classify_join,
    'PART': _classify_part,
    'KICK': _classify_kick,
    'QUIT': _classify_quit,
    'NICK': _classify_nick,
}


def miscellany(line):
    return Event(EventType.MISCELLANY, line, text=line)


def classify(line: str, table: numerics_.NumericTable = None) -> Event:
    """Classify the raw IRC message *line* as an :class:`Event`.

    *table* resolves numeric reply codes to names, defaulting to the table
    shipped with the package.  Lines that can't be parsed, or that use a
    command we don't know about, are classified as
    :attr:`EventType.MISCELLANY`.

    >>> e = classify(':alice!a@host PRIVMSG #chan :hi')
    >>> e.type, e.nick, e.target, e.text, e.pm
    (<EventType.MSG: 'msg'>, 'alice', '#chan', 'hi', False)
    """
    try:
        msg = IRCMessage.parse(line)
        origin = _origin(msg.prefix)
    except IRCParseError:
        return miscellany(line)

    if msg.is_numeric:
        if table is None:
            table = numerics_.load()
        return _classify_numeric(msg, table)

    classifier = _CLASSIFIERS.get(msg.command)
    event = classifier(msg, origin) if classifier is not None else None
    return event if event is not None else miscellany(line)
