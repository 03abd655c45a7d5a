"""Connection configuration: schema, validation and example generation.

The schema is a :mod:`schematics` model built from :func:`option` fields.
Every option carries a help string and may carry an example value, so a
commented example file can be produced from the schema alone (see
:func:`generate_toml_example`).
"""
from contextlib import contextmanager
import io
import os
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Type,
    Union,
)

import attr
from schematics import Model, types
import schematics.exceptions
import toml


_METADATA_KEY = 'ircchain_config'


class Config(Model):
    """Base class for configuration schemas.

    >>> class MyConfig(Config):
    ...     delay = option(float, default=0.5, help="Number of seconds to wait")
    """
    def __repr__(self):
        return f"{self.__class__.__name__}({', '.join(f'{a.name}={a.value!r}' for a in self.atoms())})"


#: Raised when configuration fails to validate
ConfigError = schematics.exceptions.DataError


_example_mode = False


@contextmanager
def example_mode():
    """While active, options without a supplied value get their example value instead of their default."""
    global _example_mode
    old = _example_mode
    _example_mode = True
    try:
        yield
    finally:
        _example_mode = old


class WordList(types.ListType):
    """A list of strings that also accepts a space-separated string.

    Nicknames and channels given in an INI file or an environment variable
    arrive as a single string.
    """
    def __init__(self, **kwargs):
        super().__init__(types.StringType, **kwargs)

    def convert(self, value, context=None):
        if isinstance(value, str):
            value = value.split()
        return super().convert(value, context)


#: Option value types and the schematics field used for each
_FIELD_TYPES = {
    str: types.StringType,
    int: types.IntType,
    float: types.FloatType,
    bool: types.BooleanType,
    WordList: WordList,
}


class _Default:
    """Supplies an option's value when the configuration doesn't.

    Normally that is the first set environment variable in *env*, falling
    back to *default*.  In :func:`example_mode` it is *example* if there is
    one, otherwise *default*, and the environment is ignored.  *default* and
    *example* may be callables.
    """
    def __init__(self, default=None, example=None, env: List[str] = ()):
        self.default = default
        self.example = example
        self.env = list(env)

    @staticmethod
    def _value(v):
        return v() if callable(v) else v

    def __call__(self):
        if _example_mode:
            example = self._value(self.example)
            return example if example is not None else self._value(self.default)
        for var in self.env:
            if var in os.environ:
                return os.environ[var]
        return self._value(self.default)


@attr.s(frozen=True)
class _OptionMetadata:
    type: type = attr.ib()
    help: str = attr.ib(default="", validator=attr.validators.instance_of(str))


def option(cls: type, *,
           required: bool = None,
           default: Any = None,
           example: Any = None,
           env: Union[str, List[str]] = None,
           help: str):
    """Create a configuration option holding a value of type *cls*.

    :param cls:         One of ``str``, ``int``, ``float``, ``bool`` or :class:`WordList`
    :param required:    Must the value be non-None? (default: only if *default* is not None)
    :param default:     Value (or callable returning one) used when none is supplied
    :param example:     Value (or callable returning one) used when generating an example
    :param env:         Environment variables to try, in order, before *default*
    :param help:        Description of the option, written into generated examples
    """
    if cls not in _FIELD_TYPES:
        raise TypeError(f"option type must be one of {', '.join(t.__name__ for t in _FIELD_TYPES)}")
    if required is None:
        required = default is not None
    if isinstance(env, str):
        env = [env]

    return _FIELD_TYPES[cls](
        required=required,
        default=_Default(default, example, env or ()),
        metadata={_METADATA_KEY: _OptionMetadata(type=cls, help=help)},
    )


def structure(data: Mapping[str, Any], cls: Type[Config]) -> Config:
    """Create a validated instance of *cls* from plain data, e.g. a parsed config file section.

    Raises :exc:`ConfigError` if *data* doesn't fit the schema.
    """
    o = cls(data)
    o.validate()
    return o


def make_example(cls: Type[Config]) -> Config:
    """Create an instance of *cls* from example (or default) values alone."""
    with example_mode():
        o = cls()
        o.validate()
        return o


class ConnectionConfig(Config):
    """Everything needed to connect to a server and identify ourselves."""
    address = option(str, required=True, example="irc.libera.chat", help="IRC server hostname")
    port = option(int, default=6667, help="IRC server port")
    username = option(str, example="ircchain", help="IRC user (default: first nickname)")
    realname = option(str, example="ircchain client", help="IRC 'real name' (default: username)")
    nicknames = option(WordList, required=True, example=["ircchain", "ircchain2"],
                       help="Nicks to try, in order, until one is accepted")
    use_ssl = option(bool, default=False, help="Connect with TLS")
    verify_ssl = option(bool, default=False, help="Verify the server's TLS certificate")
    throttle_seconds = option(float, default=1.0, help="Minimum seconds between outgoing private messages")
    server_password = option(str, env="IRC_PASS", example="password123", help="Server password, sent with PASS")
    poll_interval = option(float, default=0.05, help="Seconds between checks for shutdown by background threads")
    channels = option(WordList, default=list, example=["#ircchain-dev"], help="Channels to join once registered")

    def connection_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for :class:`~ircchain.core.ConnectionManager`."""
        return {
            'address': self.address,
            'port': self.port,
            'username': self.username,
            'realname': self.realname,
            'nicknames': list(self.nicknames),
            'use_ssl': self.use_ssl,
            'verify_ssl': self.verify_ssl,
            'throttle_seconds': self.throttle_seconds,
            'server_password': self.server_password,
            'poll_interval': self.poll_interval,
        }


def _option_lines(name: str, value: Optional[Any], help: str) -> List[str]:
    lines = [f"## {help}"] if help else []
    if value is None:
        lines.append(f"# {name} =")
    else:
        lines.append(f"{name} = {toml.TomlEncoder().dump_value(value)}")
    return lines


def generate_toml_example(obj: Union[Config, Type[Config]], commented: bool = False) -> str:
    """Generate example TOML for *obj*, a schema class or instance.

    Each option is preceded by its help text as a ``##`` comment.  Options
    with no value are written commented out; with *commented*, everything is.
    """
    if isinstance(obj, type):
        obj = make_example(obj)
    stream = io.StringIO()
    for atom in obj.atoms():
        metadata: _OptionMetadata = atom.field.metadata[_METADATA_KEY]
        for line in _option_lines(atom.name, atom.value, metadata.help):
            if commented and not line.startswith("#"):
                line = f"# {line}"
            stream.write(f"{line}\n")
    return stream.getvalue()

