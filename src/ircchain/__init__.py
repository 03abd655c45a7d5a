from importlib import metadata

from .core import ConnectionManager, ConnectionState
from .dispatch import CONTINUE, HANDLED, HandlerMutationError, HandlerResult
from .events import Event, EventType, classify
from .transport import ConnectError, TransportError


__version__ = None
try:
    __version__ = metadata.version('ircchain')
except metadata.PackageNotFoundError:
    pass
