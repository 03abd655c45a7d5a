import logging
import typing

import attr


#: Characters that may start a channel name (RFC2812 section 1.3)
CHANNEL_PREFIXES = '#&+!'


def is_channel(channel):
    """Check if *channel* is a channel or private chat.

    >>> is_channel('#cs-york')
    True
    >>> is_channel('&local')
    True
    >>> is_channel('ircbot')
    False
    """
    return bool(channel) and channel[0] in CHANNEL_PREFIXES


def next_nick(nick, attempted=None):
    """Derive a replacement for a nick that is already in use.

    Adds an underscore to the end of *nick*.  If the server truncated the nick
    (i.e. *attempted* is the nick we asked for and differs from *nick*), just
    adding more characters would leave us stuck in a loop, so the last
    non-underscore is replaced with an underscore instead.

    >>> next_nick('MrRoboto')
    'MrRoboto_'
    >>> next_nick('a_very_long_nick', 'a_very_long_nick_')
    'a_very_long_nic_'
    """
    if attempted is not None and nick != attempted:
        stripped = nick.rstrip('_')[:-1]
        return stripped + '_' * (len(nick) - len(stripped))
    else:
        return nick + '_'


def truncate_utf8(b: bytes, maxlen: int, ellipsis: bytes = b"...") -> bytes:
    """Trim *b* to a maximum of *maxlen* bytes (including *ellipsis* if longer), without breaking UTF-8 sequences."""
    if len(b) <= maxlen:
        return b
    # Cut down to 1 byte more than we need
    b = b[:maxlen - len(ellipsis) + 1]
    # Find the last non-continuation byte
    for i in range(len(b) - 1, -1, -1):
        if not 0x80 <= b[i] <= 0xBF:
            # Break the string to exclude the last UTF-8 sequence
            b = b[:i]
            break
    return b + ellipsis


def type_validator(_obj, attrib: attr.Attribute, value):
    """An attrs validator that inspects the attribute type."""
    if attrib.type is None:
        raise TypeError(f"'{attrib.name}' has no type to check")
    elif getattr(attrib.type, "__origin__", None) is typing.Union:
        if any(isinstance(value, t) for t in attrib.type.__args__):
            return True
    elif isinstance(value, attrib.type):
        return True
    raise TypeError(f"'{attrib.name}' must be {attrib.type} (got {value} that is a {type(value)}",
                    attrib, value)


class PrettyStreamHandler(logging.StreamHandler):
    """Wrap log messages with severity-dependent ANSI terminal colours.

    Use in place of :class:`logging.StreamHandler` to have log messages coloured
    according to severity.

    >>> handler = PrettyStreamHandler()
    >>> handler.setFormatter(logging.Formatter('[%(levelname)-8s] %(message)s'))
    >>> logging.getLogger('').addHandler(handler)

    *stream* corresponds to the same argument to :class:`logging.StreamHandler`,
    defaulting to stderr.

    *colour* overrides TTY detection to force colour on or off.
    """
    #: Mapping from logging levels to ANSI colours.
    COLOURS = {
        logging.DEBUG: '\033[36m',      # Cyan foreground
        logging.WARNING: '\033[33m',    # Yellow foreground
        logging.ERROR: '\033[31m',      # Red foreground
        logging.CRITICAL: '\033[31;7m'  # Red foreground, inverted
    }
    #: ANSI code for resetting the terminal to default colour.
    COLOUR_END = '\033[0m'

    def __init__(self, stream=None, colour=None):
        super(PrettyStreamHandler, self).__init__(stream)
        if colour is None:
            self.colour = self.stream.isatty()
        else:
            self.colour = colour

    def format(self, record):
        """Get a coloured, formatted message for a log record.

        Calls :func:`logging.StreamHandler.format` and applies a colour to the
        message if appropriate.
        """
        msg = super(PrettyStreamHandler, self).format(record)
        if self.colour:
            colour = self.COLOURS.get(record.levelno, '')
            return colour + msg + self.COLOUR_END
        else:
            return msg
