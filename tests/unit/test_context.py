"""Unit tests for context.py helpers

Tests global context management.
"""

from unittest.mock import MagicMock

import pytest

from ios_simulator_mcp.server.app import AppContext
from ios_simulator_mcp.server.context import clear_app, get_app, set_app


@pytest.fixture
def mock_app_context():
    return MagicMock(spec=AppContext)


class TestGlobalAppContext:
    """Tests for get_app/set_app/clear_app"""

    def test_get_app_raises_when_not_initialized(self):
        clear_app()

        with pytest.raises(RuntimeError) as exc_info:
            get_app()

        assert "not initialized" in str(exc_info.value).lower()

    def test_set_app_stores_context(self, mock_app_context):
        set_app(mock_app_context)
        assert get_app() is mock_app_context
        clear_app()

    def test_clear_app(self, mock_app_context):
        set_app(mock_app_context)
        clear_app()

        with pytest.raises(RuntimeError):
            get_app()
