"""
Main CLI for odx using Click.

    odx <program> [args...]

odx has no options of its own: everything after the program name, including
things that look like options, is passed through to the program verbatim.
The exit code is the program's exit code.

Telemetry is best-effort. If the session cannot be opened (no sink address,
SIGINT handler unavailable) the error goes to stderr and the program runs
untraced.
"""

import sys

import click
import structlog

from .config.loader import load_config
from .config.schema import AppConfig
from .core.process import ExitStatus, run_child
from .core.session import open_session
from .core.signals import InterruptSuppressor
from .errors import OdxError, SignalHandlerError
from .logging import configure_logging, configure_logging_basic

logger = structlog.get_logger()

# Exit codes for failures of the wrapper itself (shell conventions)
EXIT_CANNOT_EXECUTE = 126
EXIT_NOT_FOUND = 127


def _load_config() -> AppConfig | None:
    """Load configuration and set up logging. None if the config is unusable."""
    configure_logging_basic()
    try:
        config = load_config()
    except OdxError as e:
        logger.error("config.load_failed", error=str(e))
        return None
    configure_logging(config.logging)
    return config


def _run_untraced(program: str, args: tuple[str, ...]) -> ExitStatus:
    """Run the program without telemetry.

    SIGINT is still suppressed while waiting, so an interrupt is left to the
    child and its exit status is reported as usual.
    """
    suppressor: InterruptSuppressor | None = None
    try:
        suppressor = InterruptSuppressor()
    except SignalHandlerError as e:
        logger.warning("interrupt_suppressor.unavailable", error=str(e))

    try:
        return run_child(program, args)
    finally:
        if suppressor is not None:
            suppressor.restore()


def _run_traced(config: AppConfig, program: str, args: tuple[str, ...]) -> ExitStatus:
    """Run the program inside a session, or untraced if the session cannot open."""
    try:
        session = open_session(config, program, args)
    except OdxError as e:
        logger.error("session.create_failed", error=str(e))
        return _run_untraced(program, args)
    except Exception as e:
        # Telemetry is best-effort: an SDK failure must not stop the command
        logger.error("session.create_failed", error=str(e), error_type=type(e).__name__)
        return _run_untraced(program, args)

    with session:
        status = run_child(program, args, env=session.child_environment())
        try:
            session.finish(status)
        except Exception as e:
            logger.error("session.finish_failed", error=str(e))
    return status


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    },
    add_help_option=False,
)
@click.argument("program")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def main(program: str, args: tuple[str, ...]) -> None:
    """odx - Run PROGRAM with ARGS inside a telemetry transaction."""
    config = _load_config()

    try:
        if config is None:
            status = _run_untraced(program, args)
        else:
            status = _run_traced(config, program, args)
    except FileNotFoundError as e:
        logger.error("child.spawn_failed", program=program, error=str(e))
        click.echo(f"odx: {program}: command not found", err=True)
        sys.exit(EXIT_NOT_FOUND)
    except OSError as e:
        logger.error("child.spawn_failed", program=program, error=str(e))
        click.echo(f"odx: {program}: {e.strerror or e}", err=True)
        sys.exit(EXIT_CANNOT_EXECUTE)

    sys.exit(status.exit_code)
