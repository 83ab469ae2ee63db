"""Unit tests for ReplayService replay and resume."""

import io
import os
import signal
import pytest
from pathlib import Path
from unittest.mock import Mock

from autoscript.errors import (
    AlreadyLocked,
    MissingTimings,
    NestedSessionError,
    PermissionMismatch,
    SessionNotFound,
    TimingsResumeUnsupported,
    UnsupportedCombination,
)
from autoscript.recorder.runner import Recorder, Replayer
from autoscript.services.replay_service import ReplayService
from autoscript.storage.lock import SessionLock


def _snapshot(root):
    return sorted((p.name, p.stat().st_size) for p in root.iterdir())


@pytest.fixture
def mock_recorder():
    recorder = Mock(spec=Recorder)
    recorder.run.return_value = 0
    return recorder


@pytest.fixture
def mock_replayer():
    replayer = Mock(spec=Replayer)
    replayer.run.return_value = 0
    return replayer


@pytest.fixture
def replay_service(session_context, mock_recorder, mock_replayer):
    return ReplayService(session_context, mock_recorder, mock_replayer)


@pytest.mark.unit
class TestReplay:
    """Test cases for ReplayService.replay."""

    def test_untimed_replay_writes_transcript(self, replay_service, make_session, mock_replayer):
        make_session(1, transcript=b"\x1b[1mbold\x1b[0m\r\n")
        output = io.BytesIO()

        exit_code = replay_service.replay(1, output=output)

        assert exit_code == 0
        assert output.getvalue() == b"\x1b[1mbold\x1b[0m\r\n"
        mock_replayer.run.assert_not_called()

    def test_untimed_replay_strips_ansi(self, replay_service, make_session):
        make_session(1, transcript=b"\x1b[1mbold\x1b[0m\r\n")
        output = io.BytesIO()

        replay_service.replay(1, strip_ansi=True, output=output)

        assert output.getvalue() == b"bold\n"

    def test_timed_replay_uses_private_copies(self, replay_service, make_session, mock_replayer,
                                              storage_root):
        artifacts = make_session(1, with_timings=True, transcript=b"paced")
        seen = {}

        def run(timings, transcript):
            seen["timings"] = timings
            seen["transcript"] = transcript
            seen["content"] = (Path(timings).read_text(), Path(transcript).read_bytes())
            return 0

        mock_replayer.run.side_effect = run

        replay_service.replay(1, timed=True)

        assert seen["transcript"] != artifacts.transcript
        assert Path(seen["transcript"]).parent != storage_root
        assert seen["content"] == ("0.050000 5\n", b"paced")
        # Copies are gone afterwards
        assert not Path(seen["transcript"]).exists()
        assert not Path(seen["timings"]).parent.exists()

    def test_copies_removed_when_replayer_fails(self, replay_service, make_session, mock_replayer):
        make_session(1, with_timings=True)
        seen = []

        def run(timings, transcript):
            seen.append(Path(transcript).parent)
            raise FileNotFoundError("scriptreplay")

        mock_replayer.run.side_effect = run

        with pytest.raises(FileNotFoundError):
            replay_service.replay(1, timed=True)

        assert not seen[0].exists()

    def test_replayer_exit_code_is_returned(self, replay_service, make_session, mock_replayer):
        make_session(1, with_timings=True)
        mock_replayer.run.return_value = 2

        assert replay_service.replay(1, timed=True) == 2

    def test_timed_replay_without_timings(self, replay_service, make_session, storage_root):
        make_session(1)
        before = _snapshot(storage_root)

        with pytest.raises(MissingTimings):
            replay_service.replay(1, timed=True)

        assert _snapshot(storage_root) == before

    def test_timed_and_strip_ansi_rejected_first(self, replay_service, storage_root):
        # Rejected before the missing session is even noticed
        with pytest.raises(UnsupportedCombination):
            replay_service.replay(99, timed=True, strip_ansi=True)

        assert list(storage_root.iterdir()) == []

    def test_replay_missing_session(self, replay_service):
        with pytest.raises(SessionNotFound):
            replay_service.replay(1, output=io.BytesIO())

    def test_replay_ignores_lock(self, replay_service, make_session, session_lock):
        make_session(1, transcript=b"live")
        session_lock.acquire(1)
        output = io.BytesIO()

        replay_service.replay(1, output=output)

        assert output.getvalue() == b"live"
        assert session_lock.is_held(1)


@pytest.mark.unit
class TestResume:
    """Test cases for ReplayService.resume."""

    def test_resume_appends_under_lock(self, replay_service, make_session, mock_recorder,
                                       storage_root, session_lock):
        artifacts = make_session(1)
        lock_seen = []

        def run(transcript, session_id, timings=None, append=False, quiet=False):
            lock_seen.append(SessionLock(storage_root).is_held(session_id))
            return 0

        mock_recorder.run.side_effect = run

        result = replay_service.resume(1, quiet=True)

        mock_recorder.run.assert_called_once_with(artifacts.transcript, 1, append=True, quiet=True)
        assert lock_seen == [True]
        assert not session_lock.is_held(1)
        assert result.session_id == 1
        assert result.mode == "resume"

    def test_resume_refused_with_timings(self, replay_service, make_session, mock_recorder):
        make_session(1, with_timings=True)

        with pytest.raises(TimingsResumeUnsupported):
            replay_service.resume(1)

        mock_recorder.run.assert_not_called()

    def test_resume_refused_with_timings_even_when_locked(self, replay_service, make_session,
                                                          session_lock):
        make_session(1, with_timings=True)
        session_lock.acquire(1)

        with pytest.raises(TimingsResumeUnsupported):
            replay_service.resume(1)

    def test_resume_refused_while_locked(self, replay_service, make_session, session_lock,
                                         mock_recorder):
        make_session(1)
        session_lock.acquire(1)

        with pytest.raises(AlreadyLocked):
            replay_service.resume(1)

        mock_recorder.run.assert_not_called()
        assert session_lock.is_held(1)

    def test_resume_refused_inside_session(self, nested_context, mock_recorder, mock_replayer,
                                           make_session):
        make_session(1)
        service = ReplayService(nested_context, mock_recorder, mock_replayer)

        with pytest.raises(NestedSessionError):
            service.resume(1)

    def test_resume_missing_session(self, replay_service):
        with pytest.raises(SessionNotFound):
            replay_service.resume(4)

    def test_resume_releases_lock_on_crash(self, replay_service, make_session, mock_recorder,
                                           session_lock):
        make_session(1)
        mock_recorder.run.side_effect = KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            replay_service.resume(1)

        assert not session_lock.is_held(1)

    def test_resume_reports_exit_code(self, replay_service, make_session, mock_recorder):
        make_session(1)
        mock_recorder.run.return_value = 1

        assert replay_service.resume(1).exit_code == 1

    def test_resume_checks_storage_root_mode(self, replay_service, make_session, mock_recorder,
                                             storage_root, session_lock):
        make_session(1)
        os.chmod(storage_root, 0o755)

        with pytest.raises(PermissionMismatch):
            replay_service.resume(1)

        mock_recorder.run.assert_not_called()
        assert not session_lock.is_held(1)

    def test_resume_installs_termination_handlers(self, replay_service, make_session,
                                                  mock_recorder):
        make_session(1)
        before = signal.getsignal(signal.SIGTERM)
        during = []

        def run(transcript, session_id, timings=None, append=False, quiet=False):
            during.append(signal.getsignal(signal.SIGTERM))
            return 0

        mock_recorder.run.side_effect = run

        replay_service.resume(1)

        assert during[0] is not before
        assert signal.getsignal(signal.SIGTERM) is before
