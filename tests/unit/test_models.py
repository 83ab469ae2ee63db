"""Unit tests for session data models."""

import pytest
from datetime import datetime
from unittest.mock import patch

from autoscript.models.session import SessionMetadata, normalize_message


@pytest.mark.unit
class TestSessionModels:

    @pytest.mark.parametrize("message, expected", [
        (None, "-"),
        ("", "-"),
        ("   ", "-"),
        ("fix build", "fix build"),
        ("two\nlines", "two lines"),
    ])
    def test_normalize_message(self, message, expected):
        assert normalize_message(message) == expected

    def test_capture(self):
        with patch("autoscript.models.session.platform.node", return_value="box"), \
                patch("autoscript.models.session.getpass.getuser", return_value="carol"):
            metadata = SessionMetadata.capture("hello")

        assert metadata.system == "box"
        assert metadata.user == "carol"
        assert metadata.message == "hello"
        # Parses as an ISO timestamp
        datetime.fromisoformat(metadata.date)

    def test_capture_without_user(self):
        with patch("autoscript.models.session.getpass.getuser", side_effect=KeyError("uid")):
            metadata = SessionMetadata.capture()

        assert metadata.user == ""
        assert metadata.message == "-"
