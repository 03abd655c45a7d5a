import pytest
import toml

from . import TempEnvVars
from ircchain import config


REQUIRED = {
    "address": "irc.example.net",
    "nicknames": "ircchain",
}


def connection_config(**data):
    return config.structure(dict(REQUIRED, **data), config.ConnectionConfig)


@pytest.mark.parametrize("value,expected", [
    ("ircchain", ["ircchain"]),
    ("ircchain  ircchain2\tircchain3", ["ircchain", "ircchain2", "ircchain3"]),
    (["ircchain", "ircchain2"], ["ircchain", "ircchain2"]),
])
def test_wordlist(value, expected):
    assert connection_config(nicknames=value).nicknames == expected


def test_defaults():
    c = connection_config()
    assert c.port == 6667
    assert c.username is None
    assert c.realname is None
    assert c.use_ssl is False
    assert c.verify_ssl is False
    assert c.throttle_seconds == 1.0
    assert c.poll_interval == 0.05
    assert c.channels == []


def test_channels_default_not_shared():
    a = connection_config()
    a.channels.append("#mine")
    assert connection_config().channels == []


@pytest.mark.parametrize("missing", ["address", "nicknames"])
def test_required(missing):
    data = dict(REQUIRED)
    del data[missing]
    with pytest.raises(config.ConfigError):
        config.structure(data, config.ConnectionConfig)


@pytest.mark.parametrize("data", [
    {"port": "not a number"},
    {"port": None},
    {"use_ssl": "perhaps"},
    {"throttle_seconds": None},
])
def test_invalid(data):
    with pytest.raises(config.ConfigError):
        connection_config(**data)


def test_strings_converted():
    """INI files and environment variables only give us strings."""
    c = connection_config(port="6697", use_ssl="true", throttle_seconds="2.5")
    assert c.port == 6697
    assert c.use_ssl is True
    assert c.throttle_seconds == 2.5


def test_server_password_from_env():
    with TempEnvVars({"IRC_PASS": "from env"}):
        assert connection_config().server_password == "from env"
        # A configured value wins
        assert connection_config(server_password="sekrit").server_password == "sekrit"


def test_connection_kwargs():
    c = connection_config(
        port=6697,
        nicknames=["ircchain", "ircchain2"],
        use_ssl=True,
        throttle_seconds=2,
        server_password="sekrit",
        channels="#a #b",
    )
    assert c.connection_kwargs() == {
        "address": "irc.example.net",
        "port": 6697,
        "username": None,
        "realname": None,
        "nicknames": ["ircchain", "ircchain2"],
        "use_ssl": True,
        "verify_ssl": False,
        "throttle_seconds": 2.0,
        "server_password": "sekrit",
        "poll_interval": 0.05,
    }


def test_option_type_checked():
    with pytest.raises(TypeError):
        config.option(list, help="")
    with pytest.raises(TypeError):
        config.option(config.ConnectionConfig, help="")


def test_example_mode(config_example_mode):
    with TempEnvVars({"IRC_PASS": "from env"}):
        c = config.ConnectionConfig()
    assert c.address == "irc.libera.chat"
    assert c.nicknames == ["ircchain", "ircchain2"]
    assert c.port == 6667
    # The environment is ignored for examples
    assert c.server_password == "password123"


class TestGenerateExample:
    def lines(self, s):
        return [line.rstrip() for line in s.split("\n") if line]

    def test_from_class(self):
        output = config.generate_toml_example(config.ConnectionConfig)
        lines = self.lines(output)
        assert lines[:4] == [
            "## IRC server hostname",
            'address = "irc.libera.chat"',
            "## IRC server port",
            "port = 6667",
        ]
        assert 'nicknames = [ "ircchain", "ircchain2",]' in lines
        assert "use_ssl = false" in lines
        assert "throttle_seconds = 1.0" in lines

    def test_loads_back(self):
        output = config.generate_toml_example(config.ConnectionConfig)
        c = config.structure(toml.loads(output), config.ConnectionConfig)
        assert c.to_primitive() == config.make_example(config.ConnectionConfig).to_primitive()

    def test_unset_option_commented_out(self):
        c = connection_config()
        lines = self.lines(config.generate_toml_example(c))
        assert 'address = "irc.example.net"' in lines
        assert "# username =" in lines
        assert "# realname =" in lines

    def test_commented(self):
        output = config.generate_toml_example(config.ConnectionConfig, commented=True)
        assert toml.loads(output) == {}
        assert '# address = "irc.libera.chat"' in self.lines(output)
        assert "## IRC server hostname" in self.lines(output)
