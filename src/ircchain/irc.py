import codecs
import re
from typing import (
    List,
    Optional,
)

import attr

from . import util


class IRCParseError(Exception):
    """Raised by :meth:`IRCMessage.parse` when a message can't be parsed."""


@attr.s(frozen=True, slots=True)
class IRCMessage:
    """Represents an IRC message.

    The IRC message format, paraphrased and simplified from RFC2812, is::

        message = [":" prefix " "] command {" " parameter} [" :" trailing]

    Has the following attributes:

    :param raw: The raw IRC message
    :type raw: str
    :param prefix: Prefix part of the message, usually the origin
    :type prefix: str or None
    :param command: IRC command, upper-cased unless numeric
    :type command: str
    :param params: List of command parameters (including trailing)
    :type params: list of str
    """
    raw: str = attr.ib(validator=util.type_validator)
    prefix: Optional[str] = attr.ib(validator=util.type_validator)
    command: str = attr.ib(validator=util.type_validator)
    params: List[str] = attr.ib(validator=attr.validators.deep_iterable(attr.validators.instance_of(str), None))

    #: Regular expression to extract message components from a message.
    REGEX = re.compile(r'(:(?P<prefix>\S+) )?(?P<command>\S+)'
                       r'(?P<params>( (?!:)\S+)*)( :(?P<trailing>.*))?')
    #: Commands to force trailing parameter (``:blah``) for
    FORCE_TRAILING = {'USER', 'QUIT', 'PRIVMSG', 'NOTICE', 'TOPIC', 'PART', 'KICK', 'ERROR'}

    @classmethod
    def parse(cls, line):
        """Create an :class:`IRCMessage` object by parsing a raw message."""
        match = cls.REGEX.match(line)
        if match is None:
            raise IRCParseError(line)
        else:
            groups = match.groupdict()
            # Store raw IRC message
            groups['raw'] = line
            groups['command'] = groups['command'].upper()
            # Split space-separated parameters
            groups['params'] = groups['params'].split()
            # Trailing is really just another parameter (even when empty)
            if groups['trailing'] is not None:
                groups['params'].append(groups['trailing'])
            del groups['trailing']
            return cls(**groups)

    @classmethod
    def create(cls, command, params=None, prefix=None):
        """Create an :class:`IRCMessage` from its core components.

        The *raw* attribute will be generated based on the message details.
        """
        args = {
            'prefix': prefix or None,
            'command': command,
            'params': params or [],
            'raw': ''.join([
                (':' + prefix + ' ') if prefix else '',
                command,
                cls._raw_params(params or [], command in cls.FORCE_TRAILING),
            ]),
        }
        return cls(**args)

    @property
    def is_numeric(self):
        """Is this a numeric reply, i.e. a three-digit command?"""
        return len(self.command) == 3 and self.command.isdigit()

    def pad_params(self, length, default=None):
        """Pad parameters to *length* with *default*.

        Useful when a command has optional parameters:

        >>> msg = IRCMessage.parse(':nick!user@host KICK #channel other')
        >>> channel, nick, reason = msg.params
        Traceback (most recent call last):
          ...
        ValueError: not enough values to unpack (expected 3, got 2)
        >>> channel, nick, reason = msg.pad_params(3)
        """
        return self.params + [default] * (length - len(self.params))

    @staticmethod
    def _raw_params(params, force_trailing):
        if len(params) > 0 and (force_trailing or ' ' in params[-1]
                                or params[-1].startswith(':') or params[-1] == ''):
            trailing = params[-1]
            params = params[:-1]
        else:
            trailing = None

        raw = ''
        if len(params) > 0:
            raw += ' ' + ' '.join(params)
        if trailing is not None:
            raw += ' :' + trailing
        return raw


@attr.s(frozen=True, slots=True)
class IRCUser:
    """Provide access to the parts of an IRC user string.

    The following parts of the user string are available, set to *None* if that
    part of the string is absent:

    :param raw: Raw user string
    :param nick: Nick of the user
    :param user: Username of the user (excluding leading ``~``)
    :param host: Hostname of the user

    >>> IRCUser.parse('my_nick!some_user@host.name')
    IRCUser(raw='my_nick!some_user@host.name', nick='my_nick', user='some_user', host='host.name')
    """
    raw: str = attr.ib(validator=util.type_validator)
    nick: str = attr.ib(validator=util.type_validator)
    user: Optional[str] = attr.ib(validator=util.type_validator)
    host: Optional[str] = attr.ib(validator=util.type_validator)

    #: Username parsing regex.  Stripping out the "~" might be a
    #: Freenode peculiarity...
    REGEX = re.compile(r'(?P<raw>(?P<nick>[^!@]+)(!~*(?P<user>[^@]+))?(@(?P<host>.+))?)')

    @classmethod
    def parse(cls, raw):
        """Create an :class:`IRCUser` from a raw user string.

        Raises :exc:`IRCParseError` if *raw* has no nick part.
        """
        match = cls.REGEX.match(raw)
        if match is None:
            raise IRCParseError(f"invalid user string: {raw!r}")
        return cls(**match.groupdict())

    @property
    def is_server(self):
        """True if the origin is a bare server name, with no user or host part."""
        return self.user is None and self.host is None


class IRCCodec(codecs.Codec):
    """The encoding scheme to use for IRC messages.

    IRC messages are "just bytes" with no encoding made explicit in the
    protocol definition or the messages.  Ideally we'd like to handle IRC
    messages as proper strings.
    """
    def encode(self, input, errors='strict'):
        """Encode a message as UTF-8."""
        return codecs.encode(input, 'utf-8', errors)

    def decode(self, input, errors='strict'):
        """Decode a message.

        IRC messages could pretty much be in any encoding.  Here we just try
        the two most likely candidates: UTF-8, falling back to CP1252.
        Unfortunately, any encoding where every byte is valid (e.g. CP1252)
        makes it impossible to detect encoding errors - if *input* isn't UTF-8
        or CP1252-compatible, the result might be a bit odd.
        """
        try:
            return codecs.decode(input, 'utf-8', errors)
        except UnicodeDecodeError:
            return codecs.decode(input, 'cp1252', 'replace')
