import configparser
import json
import logging
import logging.config
import os
import signal
import sys

import click
import rollbar
import toml

from . import __version__
from . import config as config_
from . import numerics
from .core import ConnectionManager
from .transport import ConnectError


LOG = logging.getLogger(__name__)


@click.command(context_settings={
    'help_option_names': ['-h', '--help'],
    'auto_envvar_prefix': 'IRCCHAIN',
})
@click.version_option(version=__version__)
@click.option('--debug', '-d', is_flag=True, default=False,
              help='Turn on debug logging for the connection.')
@click.option('--debug-io', is_flag=True, default=False,
              help='Turn on logging of raw traffic to and from the server.')
@click.option('--debug-events', is_flag=True, default=False,
              help='Turn on debug logging for event dispatch.')
@click.option('--debug-all', is_flag=True, default=False,
              help='Turn on all debug logging.')
@click.option('--colour/--no-colour', 'colour_logging', default=None,
              help='Use colour in logging. [default: automatic]')
@click.option('--rollbar-token', default=None,
              help='Rollbar access token, enables Rollbar error reporting.')
@click.option('--env-name', default='development',
              help='Deployment environment name. [default: development]')
@click.option('--config-format', type=click.Choice(("ini", "json", "toml")),
              help='Configuration file format. [default: based on file extension]')
@click.argument('config', type=click.File('r'))
def main(config,
         debug,
         debug_io,
         debug_events,
         debug_all,
         colour_logging,
         rollbar_token,
         env_name,
         config_format):
    """Connect to an IRC server and stay connected until interrupted.
    """
    # Apply "debug all" option
    if debug_all:
        debug = debug_io = debug_events = True

    # Configure logging
    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '[{asctime}] ({levelname[0]}:{name}) {message}',
                'datefmt': '%Y/%m/%d %H:%M:%S',
                'style': '{',
            },
        },
        'handlers': {
            'pretty': {
                'class': 'ircchain.util.PrettyStreamHandler',
                'level': 'DEBUG',
                'formatter': 'default',
                'colour': colour_logging,
            },
        },
        'root': {
            'level': 'DEBUG' if debug else 'INFO',
            'handlers': ['pretty'],
        },
        'loggers': {
            'ircchain.transport': {
                'level': 'DEBUG' if debug_io else 'INFO',
            },
            'ircchain.dispatch': {
                'level': 'DEBUG' if debug_events else 'INFO',
            },
        }
    })

    # Read configuration
    _, ext = os.path.splitext(config.name)
    if config_format == "ini" or ext.lower() in {".ini", ".cfg"}:
        LOG.debug("Reading configuration with ConfigParser")
        config_data = load_ini(config)
    elif config_format == "json" or ext.lower() in {".json"}:
        LOG.debug("Reading configuration as JSON")
        config_data = load_json(config)
    elif config_format == "toml" or ext.lower() in {".toml"}:
        LOG.debug("Reading configuration as TOML")
        config_data = load_toml(config)
    else:
        raise click.BadArgumentUsage('config file extension not in {".ini", ".cfg", ".json", ".toml"} '
                                     'and no --config-format specified, unsure how to load config')
    try:
        connection_config = config_.structure(config_data.get('ircchain', config_data),
                                              config_.ConnectionConfig)
    except config_.ConfigError as e:
        raise click.BadParameter(f'invalid configuration: {e}', param_hint='CONFIG')

    # Configure Rollbar for exception reporting
    on_error = None
    if rollbar_token:
        rollbar.init(rollbar_token, env_name)

        def on_error(exception, line):
            exc_info = (type(exception), exception, exception.__traceback__)
            rollbar.report_exc_info(exc_info, extra_data={'ircchain_line': line})

    try:
        client = ConnectionManager(on_error=on_error, **connection_config.connection_kwargs())
    except ConnectError as e:
        raise click.ClickException(str(e))

    # Join configured channels once registered
    channels = list(connection_config.channels)
    if channels:
        def join_channels(text, args):
            for channel in channels:
                client.join(channel)
        client.prepend_handler('incoming_welcome', join_channels)

    def stop(signum, frame):
        # Next ctrl+c should ignore our handler
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        LOG.info("Signal received, attempting graceful shutdown... (press ^c again to force exit)")
        client.signal_handler(signum, frame)

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    # Run the client until it dies or gets a signal
    client.start_listening_forever()
    LOG.info("Exited")


def load_ini(f):
    parser = configparser.ConfigParser(interpolation=None, allow_no_value=True)
    parser.optionxform = str    # Preserve case
    parser.read_file(f)
    config = {}
    for name, parser_section in parser.items():
        config[name] = section = {}
        for key, value in parser_section.items():
            section[key] = value
    return config


def load_json(f):
    return json.load(f)


def load_toml(f):
    return toml.load(f)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def util():
    pass


@util.command(help="Generate example configuration file")
@click.option("--commented/--uncommented", "commented", default=False,
              help="Comment out all generated configuration")
def example_config(commented):
    sys.stdout.write("[ircchain]\n")
    sys.stdout.write(config_.generate_toml_example(config_.ConnectionConfig, commented=commented))


@util.command(name="numerics", help="List known numeric replies and their event names")
def list_numerics():
    for code, name in numerics.load():
        sys.stdout.write(f"{code:03d}  incoming_{name}\n")
