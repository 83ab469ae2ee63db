"""Pytest configuration and fixtures for autoscript tests."""

import pytest
import tempfile
import shlex
import sys
import logging
from pathlib import Path

from autoscript.config import SessionContext
from autoscript.storage.directory import ensure_storage_directory
from autoscript.storage.lock import SessionLock
from autoscript.storage.session_store import SessionStore


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests running real subprocesses or the CLI")


# Stands in for script(1): writes a transcript (and timings), then records how
# it was invoked so tests can inspect the arguments and environment.
FAKE_RECORDER = r'''
import json
import os
import sys
import time

args = sys.argv[1:]
transcript = args[-1]
flags = args[:-1]
timings = None
for flag in flags:
    if flag.startswith("--timing="):
        timings = flag.split("=", 1)[1]

payload = b"$ echo hi\r\n\x1b[32mhi\x1b[0m\r\n"
mode = "ab" if "-a" in flags else "wb"
with open(transcript, mode) as f:
    f.write(payload)
if timings:
    with open(timings, "w") as f:
        f.write("0.100000 %d\n" % len(payload))

log_path = os.environ.get("FAKE_RECORDER_LOG")
if log_path:
    session_dir = os.path.dirname(os.path.abspath(transcript))
    session_id = os.path.basename(transcript).split(".")[0]
    with open(log_path, "a") as f:
        f.write(json.dumps({
            "flags": flags,
            "transcript": transcript,
            "session_env": os.environ.get("AUTOSCRIPT_SESSION"),
            "lock_held": os.path.isdir(os.path.join(session_dir, session_id + ".lock")),
        }) + "\n")

time.sleep(float(os.environ.get("FAKE_RECORDER_SLEEP", "0")))
sys.exit(int(os.environ.get("FAKE_RECORDER_EXIT", "0")))
'''


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def storage_root(temp_data_dir):
    """Storage root created with the required permissions."""
    return ensure_storage_directory(Path(temp_data_dir) / "sessions")


@pytest.fixture
def session_lock(storage_root):
    return SessionLock(storage_root)


@pytest.fixture
def session_store(storage_root, session_lock):
    return SessionStore(storage_root, session_lock)


@pytest.fixture
def session_context(storage_root):
    """Context for a process that is not inside a session."""
    return SessionContext(storage_root=storage_root)


@pytest.fixture
def nested_context(storage_root):
    """Context for a process already running inside session 7."""
    return SessionContext(storage_root=storage_root, current_session=7)


@pytest.fixture
def fake_recorder_command(temp_data_dir):
    """Command line that runs the fake recorder with this interpreter."""
    script = Path(temp_data_dir) / "fake_script.py"
    script.write_text(FAKE_RECORDER)
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"


@pytest.fixture
def recorder_log(temp_data_dir, monkeypatch):
    """Path the fake recorder appends one JSON line per invocation to."""
    log_path = Path(temp_data_dir) / "recorder_log.jsonl"
    monkeypatch.setenv("FAKE_RECORDER_LOG", str(log_path))
    monkeypatch.delenv("AUTOSCRIPT_SESSION", raising=False)
    return log_path


@pytest.fixture
def make_session(session_store):
    """Factory creating a finished session directly through the store."""
    def _make(session_id, message=None, with_timings=False, transcript=b"output\r\n",
              date="2024-01-02T03:04:05"):
        from autoscript.models.session import SessionMetadata, normalize_message

        artifacts = session_store.create(session_id, with_timings=with_timings)
        session_store.write_metadata(
            artifacts.metadata,
            SessionMetadata(date=date, system="testhost", user="tester",
                            message=normalize_message(message)),
        )
        artifacts.transcript.write_bytes(transcript)
        if with_timings:
            artifacts.timings.write_text(f"0.050000 {len(transcript)}\n")
        return artifacts

    return _make
