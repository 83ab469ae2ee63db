"""Subprocess wrappers for the external terminal recorder and replayer."""

import logging
import os
import shlex
import signal
import subprocess
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Sequence, Union

from ..config import SESSION_ENV_VAR

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]

TERMINATING_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _raise_exit(signum: int, frame) -> None:
    logger.info(f"Received {signal.Signals(signum).name}, stopping session")
    raise SystemExit(128 + signum)


@contextmanager
def exit_on_termination() -> Iterator[None]:
    """Turn SIGTERM and SIGHUP into SystemExit while the block runs.

    The default dispositions end the process without unwinding, which would
    leave session locks behind. Previous handlers are restored on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        # Handlers can only be installed from the main thread
        yield
        return

    original = {signum: signal.getsignal(signum) for signum in TERMINATING_SIGNALS}
    for signum in TERMINATING_SIGNALS:
        signal.signal(signum, _raise_exit)
    try:
        yield
    finally:
        for signum, handler in original.items():
            # None means a handler installed outside Python; it cannot be restored
            if handler is not None:
                signal.signal(signum, handler)


def _split_command(command: Command) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


class Recorder:
    """Runs script(1) to capture a terminal session into a transcript."""

    def __init__(self, command: Command = "script", flush: bool = True,
                 environ: Optional[Mapping[str, str]] = None):
        """Initialize recorder.

        Args:
            command: Recorder program, optionally with leading arguments
            flush: Flush the transcript after each write so readers see it live
            environ: Base environment for the child; defaults to os.environ
        """
        self.command = _split_command(command)
        if not self.command:
            raise ValueError("Recorder command is empty")
        self.flush = flush
        self.environ = environ

    def build_args(self, transcript: Path, timings: Optional[Path] = None,
                   append: bool = False, quiet: bool = False) -> List[str]:
        args = list(self.command)
        if quiet:
            args.append("-q")
        if append:
            args.append("-a")
        if self.flush:
            args.append("-f")
        if timings is not None:
            args.append(f"--timing={timings}")
        args.append(str(transcript))
        return args

    def build_env(self, session_id: int) -> dict:
        env = dict(os.environ if self.environ is None else self.environ)
        env[SESSION_ENV_VAR] = str(session_id)
        return env

    def run(self, transcript: Path, session_id: int, timings: Optional[Path] = None,
            append: bool = False, quiet: bool = False) -> int:
        """Run the recorder in the foreground until the user leaves the session.

        Args:
            transcript: File the recorder writes (or appends) raw output to
            session_id: Exported to the child so nested invocations can tell
            timings: Capture timing data to this file
            append: Append to an existing transcript
            quiet: Suppress the recorder's start/stop banners

        Returns:
            Recorder exit code (negative if killed by a signal)
        """
        args = self.build_args(transcript, timings=timings, append=append, quiet=quiet)
        logger.info(f"Starting recorder for session {session_id}: {shlex.join(args)}")
        completed = subprocess.run(args, env=self.build_env(session_id))
        logger.info(f"Recorder for session {session_id} exited with {completed.returncode}")
        return completed.returncode


class Replayer:
    """Runs scriptreplay(1) to play a transcript back with original pacing."""

    def __init__(self, command: Command = "scriptreplay"):
        self.command = _split_command(command)
        if not self.command:
            raise ValueError("Replayer command is empty")

    def build_args(self, timings: Path, transcript: Path) -> List[str]:
        return [*self.command, str(timings), str(transcript)]

    def run(self, timings: Path, transcript: Path) -> int:
        args = self.build_args(timings, transcript)
        logger.info(f"Starting replayer: {shlex.join(args)}")
        completed = subprocess.run(args)
        logger.info(f"Replayer exited with {completed.returncode}")
        return completed.returncode
