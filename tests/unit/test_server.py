# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the uvicorn entrypoint."""

from unittest.mock import MagicMock

import pytest

from src.api import server
from src.core.config.settings import APISettings, Settings


@pytest.fixture
def uvicorn_run(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace uvicorn.run so nothing binds a socket."""
    run = MagicMock()
    monkeypatch.setattr(server.uvicorn, "run", run)
    return run


class TestRun:
    """Tests for run."""

    def test_uses_api_settings(self, test_settings: Settings, uvicorn_run: MagicMock) -> None:
        """Test that host, port and workers come from API_* settings."""
        settings = test_settings.model_copy(
            update={"api": APISettings(host="127.0.0.1", port=9000, workers=4)}
        )

        server.run(settings)

        args, kwargs = uvicorn_run.call_args
        assert args == (server.APP_FACTORY,)
        assert kwargs["factory"] is True
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
        assert kwargs["workers"] == 4
        assert kwargs["reload"] is False

    def test_development_debug_reloads_single_worker(
        self, test_settings: Settings, uvicorn_run: MagicMock
    ) -> None:
        """Test that a debug development run reloads with one worker."""
        settings = test_settings.model_copy(
            update={"environment": "development", "debug": True, "api": APISettings(workers=4)}
        )

        server.run(settings)

        kwargs = uvicorn_run.call_args.kwargs
        assert kwargs["reload"] is True
        assert kwargs["workers"] == 1
