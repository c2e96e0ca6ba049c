import asyncio
import functools
import logging
import traceback
from pathlib import Path

import click

from . import __version__, constants
from .builder import Builder
from .config import Config
from .engine import WhalesEngine
from .exceptions import (
    AggregateError,
    ConfigError,
    DestroyError,
    EngineError,
    LedgerNetError,
)
from .utils import parse_module_levels, setup_logger


def complete_config_files(ctx, param, incomplete):
    """Auto-complete .yml and .yaml build files in current directory"""
    cwd = Path.cwd()
    yml_files = list(cwd.glob('*.yml')) + list(cwd.glob('*.yaml'))
    return sorted(f.name for f in yml_files if f.name.startswith(incomplete))


def setup_logging(debug: bool, log_levels: str = None, log_file: str = None):
    """Setup logger with debug and module-level configuration"""
    module_levels = parse_module_levels(log_levels) if log_levels else None
    setup_logger(debug=debug, module_levels=module_levels, log_file=log_file)


def handle_errors(func):
    """Decorator to handle common exceptions"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConfigError as e:
            logging.error(f"Configuration error: {e}")
        except AggregateError as e:
            logging.error(f"Stage failed for node(s) {e.failed_indices}:\n{e}")
        except DestroyError as e:
            logging.error(f"Teardown incomplete: {e}")
        except EngineError as e:
            logging.error(f"Container engine error: {e}")
        except LedgerNetError as e:
            logging.error(f"An unexpected application error occurred: {e}")
        ctx = click.get_current_context()
        if ctx.obj.get('debug'):
            traceback.print_exc()
        raise click.Abort()
    return wrapper


def make_builder(config_file: str) -> Builder:
    config = Config(config_file)
    return Builder(config, WhalesEngine())


@handle_errors
def do_up(config_file: str, serve_api: bool, host: str, port: int, keep: bool):
    """Execute up command - build the network, optionally serve the query API"""
    builder = make_builder(config_file)
    try:
        asyncio.run(builder.build())
    except LedgerNetError:
        logging.error(f"Build '{builder.name}' failed; started containers are left in place.")
        logging.info(f"Use 'lnet down {config_file}' to remove them.")
        raise

    logging.info(f"Network '{builder.name}' is up with {len(builder.nodes)} node(s).")
    if not serve_api:
        return

    from .api import serve
    serve(builder, host=host, port=port)
    if keep:
        logging.info(f"Keeping network '{builder.name}'. Use 'lnet down {config_file}' to remove it.")
        return
    asyncio.run(builder.destroy())


@handle_errors
def do_down(config_file: str):
    """Execute down command - remove everything labelled with the build name"""
    builder = make_builder(config_file)
    asyncio.run(builder.destroy())


@handle_errors
def do_ps(config_file: str):
    """List containers for the build"""
    builder = make_builder(config_file)
    containers = builder.list_containers()

    if not containers:
        logging.info(f"No containers found for build '{builder.name}'.")
        return

    click.echo(f"{'NAME':<30} {'ROLE':<14} {'INDEX':<6} {'STATUS':<12}")
    click.echo("-" * 64)
    for container in sorted(containers, key=lambda c: c.name):
        role = container.labels.get(constants.LABEL_ROLE, "")
        index = container.labels.get(constants.LABEL_INDEX, "")
        click.echo(f"{container.name:<30} {role:<14} {index:<6} {container.status:<12}")


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('-l', '--log-levels', help="Comma-separated per-module log levels (e.g., 'net=DEBUG,bld=INFO')")
@click.option('-f', '--log-file', help='Path to log file')
@click.version_option(version=__version__, prog_name='ledgernet')
@click.pass_context
def cli(ctx, debug, log_levels, log_file):
    """LedgerNet - Provision throw-away permissioned ledger networks on Docker

    \b
    Examples:
      lnet up network.yml             Build the network
      lnet up network.yml --serve     Build and serve the query API
      lnet down network.yml           Remove everything of the build
    """
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    setup_logging(debug, log_levels, log_file)


@cli.command()
@click.argument('config_file', shell_complete=complete_config_files)
@click.option('--serve', 'serve_api', is_flag=True, help='Serve the read-only query API after the build')
@click.option('--host', default=constants.API_HOST, show_default=True, help='API listen address')
@click.option('--port', default=constants.API_PORT, show_default=True, type=int, help='API listen port')
@click.option('--keep', is_flag=True, help='Keep the network when the API server stops')
@click.pass_context
def up(ctx, config_file, serve_api, host, port, keep):
    """Create the network, then start tx managers and ledger nodes

    \b
    A failed build is not rolled back; run 'lnet down' to clean up.

    \b
    Examples:
      lnet up network.yml
      lnet up network.yml --serve --port 9090
    """
    do_up(config_file, serve_api, host, port, keep)


@cli.command()
@click.argument('config_file', shell_complete=complete_config_files)
@click.pass_context
def down(ctx, config_file):
    """Remove all containers and networks labelled with the build name

    \b
    Safe to run repeatedly and after a crashed 'up'.
    """
    do_down(config_file)


@cli.command()
@click.argument('config_file', shell_complete=complete_config_files)
@click.pass_context
def ps(ctx, config_file):
    """List containers of the build and their status"""
    do_ps(config_file)
