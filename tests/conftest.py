import pytest

from ircchain import config
from ircchain.core import ConnectionManager
from . import FakeTransport


@pytest.fixture
def config_example_mode():
    with config.example_mode():
        yield


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def connection_options():
    """Override to change how the ``connection`` fixture is created."""
    return {}


@pytest.fixture
def connection(transport, connection_options):
    options = {
        'nicknames': ['ircchain', 'ircchain2'],
        'username': 'chain',
        'realname': 'Chain Bot',
        'throttle_seconds': 0.0,
        'poll_interval': 0.01,
    }
    options.update(connection_options)
    conn = ConnectionManager('irc.example.net', 6667,
                             transport_factory=lambda *args, **kwargs: transport,
                             **options)
    yield conn
    conn.stop_listening()
