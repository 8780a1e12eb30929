"""Tests for structured logging setup."""
from __future__ import annotations

import io
import json

import structlog

from family_kinship.logging import configure_logging


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_store_events_are_json(self, store):
        stream = io.StringIO()
        configure_logging("INFO", stream=stream)

        family = store.create_family("Ivanov")

        events = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert events[-1]["event"] == "store.family_created"
        assert events[-1]["family_id"] == family.id
        assert events[-1]["level"] == "info"
        assert "timestamp" in events[-1]

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging("WARNING", stream=stream)

        structlog.get_logger("family_kinship").info("quiet")
        structlog.get_logger("family_kinship").warning("loud")

        assert "quiet" not in stream.getvalue()
        assert "loud" in stream.getvalue()

    def test_unknown_level_falls_back_to_info(self):
        stream = io.StringIO()
        configure_logging("chatty", stream=stream)

        structlog.get_logger("family_kinship").debug("hidden")
        structlog.get_logger("family_kinship").info("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_console_renderer(self):
        stream = io.StringIO()
        configure_logging("INFO", json_output=False, stream=stream)

        structlog.get_logger("family_kinship").info("merge.applied", moved_members=3)

        assert "merge.applied" in stream.getvalue()
        assert "moved_members=3" in stream.getvalue()
