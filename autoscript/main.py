"""Main application entry point for autoscript."""

import sys
import logging
import functools
from pathlib import Path
from typing import Optional

import click
from pubsub import pub
from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import AutoscriptConfig, SessionContext
from .errors import AutoscriptError
from .events.publisher import SessionEventPublisher, LIFECYCLE_TOPIC
from .models.events import SessionEvent
from .recorder.runner import Recorder, Replayer
from .services.recording_service import RecordingService
from .services.replay_service import ReplayService
from .storage.directory import ensure_storage_directory
from .storage.lock import SessionLock
from .storage.session_store import SessionStore

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


class ConsoleNotifier:
    """Announces session lifecycle events on the error stream."""

    def __init__(self, console: Console, topic: str = LIFECYCLE_TOPIC):
        self.console = console
        self.topic = topic
        pub.subscribe(self._on_event, topic)

    def _on_event(self, event: SessionEvent) -> None:
        if event.event_type == "started":
            verb = "Recording" if event.mode == "record" else "Resuming"
            self.console.print(
                f"[bold green]{verb} session {event.session_id}[/] "
                f"(exit the shell to stop)"
            )
        elif event.event_type == "stopped":
            self.console.print(f"[bold]Session {event.session_id} saved[/]")
        elif event.event_type == "deleted":
            self.console.print(f"Deleted session {event.session_id}")

    def close(self) -> None:
        if pub.isSubscribed(self._on_event, self.topic):
            pub.unsubscribe(self._on_event, self.topic)


class Application:
    """Configuration, context and collaborators for one CLI invocation."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        # Load configuration
        self.config = AutoscriptConfig(config_path)
        # Set up logging (command line overrides config)
        level = log_level or self.config.get('logging.level', 'WARNING')
        setup_logging(self.config, level)

        self.context = SessionContext.from_config(self.config)
        self.publisher = SessionEventPublisher()
        self.console = Console(stderr=True)
        self.notifier: Optional[ConsoleNotifier] = None

    def recorder(self) -> Recorder:
        return Recorder(
            command=self.config.get('recorder.command', 'script'),
            flush=self.config.get('recorder.flush', True),
        )

    def replayer(self) -> Replayer:
        return Replayer(command=self.config.get('replayer.command', 'scriptreplay'))

    def store(self) -> SessionStore:
        root = ensure_storage_directory(self.context.storage_root)
        return SessionStore(root, SessionLock(root), self.publisher)

    def notify(self, quiet: bool) -> None:
        """Print lifecycle notices unless running quietly."""
        if not quiet and self.notifier is None:
            self.notifier = ConsoleNotifier(self.console)

    def close(self) -> None:
        if self.notifier is not None:
            self.notifier.close()
            self.notifier = None


def setup_logging(config: AutoscriptConfig, level: str = "WARNING") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path')
    console_output = config.get('logging.console_output', True)

    handlers = []

    # File handler - everything at DEBUG, when a log file is configured
    if log_file_path:
        log_dir = Path(log_file_path).parent
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(process)d - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    # Console handler - stderr only, stdout carries replayed transcripts
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('autoscript: %(levelname)s: %(message)s'))
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.debug(f"Log file: {log_file_path}, log level: {level}")


def handle_errors(func):
    """Report autoscript and OS errors as a one-line diagnostic with exit 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AutoscriptError as e:
            logger.info(f"{func.__name__} refused: {e}")
            raise click.ClickException(str(e))
        except OSError as e:
            logger.error(f"{func.__name__} failed: {e}", exc_info=True)
            raise click.ClickException(str(e))
    return wrapper


session_id_argument = click.argument("session_id", type=click.IntRange(min=1), metavar="SESSION_ID")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-v", "--version", prog_name="autoscript")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Configuration YAML file (default: $XDG_CONFIG_HOME/autoscript/config.yaml)")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help="Logging level (overrides config)")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """autoscript - record, replay and resume terminal sessions."""
    try:
        app = Application(config_path, log_level)
    except (AutoscriptError, OSError) as e:
        raise click.ClickException(str(e))
    ctx.obj = app
    ctx.call_on_close(app.close)


@cli.command()
@click.option("-q", "--quiet", is_flag=True, help="Do not print start/stop notices")
@click.option("-t", "--timing", is_flag=True, help="Capture timing data for paced replay")
@click.option("-m", "--message", help="Description stored with the session")
@click.pass_obj
@handle_errors
def record(app: Application, quiet: bool, timing: bool, message: Optional[str]) -> None:
    """Record a new session."""
    app.notify(quiet)
    service = RecordingService(app.context, app.recorder(), app.publisher)
    service.record(message=message, with_timings=timing, quiet=quiet)


@cli.command()
@session_id_argument
@click.option("-t", "--timing", is_flag=True, help="Replay with the original pacing")
@click.option("-s", "--strip-ansi", is_flag=True, help="Remove terminal escape sequences")
@click.pass_obj
@handle_errors
def replay(app: Application, session_id: int, timing: bool, strip_ansi: bool) -> None:
    """Replay a recorded session."""
    service = ReplayService(app.context, app.recorder(), app.replayer(), app.publisher)
    exit_code = service.replay(
        session_id,
        timed=timing,
        strip_ansi=strip_ansi,
        output=click.get_binary_stream("stdout"),
    )
    if exit_code != 0:
        logger.warning(f"Replayer exited with status {exit_code}")


@cli.command()
@session_id_argument
@click.option("-q", "--quiet", is_flag=True, help="Do not print start/stop notices")
@click.pass_obj
@handle_errors
def resume(app: Application, session_id: int, quiet: bool) -> None:
    """Continue recording into an existing session."""
    app.notify(quiet)
    service = ReplayService(app.context, app.recorder(), app.replayer(), app.publisher)
    service.resume(session_id, quiet=quiet)


@cli.command()
@session_id_argument
@click.option("-q", "--quiet", is_flag=True, help="Do not confirm the deletion")
@click.pass_obj
@handle_errors
def delete(app: Application, session_id: int, quiet: bool) -> None:
    """Delete a session and all of its files."""
    app.notify(quiet)
    app.store().delete(session_id)


@cli.command(name="list")
@click.pass_obj
@handle_errors
def list_sessions(app: Application) -> None:
    """List recorded sessions."""
    table = Table(box=None, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("DATE")
    table.add_column("MESSAGE")
    table.add_column("STATUS")

    for summary in app.store().list():
        table.add_row(
            str(summary.session_id),
            Text(summary.date),
            Text(summary.message),
            "locked" if summary.locked else "",
        )

    if table.row_count == 0:
        app.console.print("No sessions recorded")
        return
    Console().print(table)


@cli.command()
@click.pass_obj
@handle_errors
def context(app: Application) -> None:
    """Print the ID of the session this shell is running inside."""
    if not app.context.inside_session:
        raise click.ClickException("Not inside a recorded session")
    click.echo(str(app.context.current_session))


def main() -> None:
    """Main entry point for autoscript."""
    cli(prog_name="autoscript")


if __name__ == "__main__":
    main()
