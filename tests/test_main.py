import pytest
from unittest.mock import MagicMock

import main
from shared.config import Settings

@pytest.fixture
def settings(tmp_path):
    return Settings(storage_dir=tmp_path / "served", host="0.0.0.0", http_port=3456)

def test_build_server_config(settings):
    """Test server configuration"""
    server = main.build_server(settings)
    assert server.config.host == "0.0.0.0"
    assert server.config.port == 3456
    assert server.config.workers == 1
    assert server.config.loop == "asyncio"
    assert server.config.timeout_keep_alive == 30
    assert server.config.timeout_graceful_shutdown == 10
    assert server.config.app.state.STORAGE_DIR == (settings.storage_dir).resolve()

def test_build_server_creates_storage_root(settings):
    main.build_server(settings)
    assert settings.storage_dir.is_dir()

def test_main_runs_server(settings, monkeypatch):
    mock_server = MagicMock()
    monkeypatch.setattr(main, "load_settings", lambda: settings)
    monkeypatch.setattr(main.uvicorn, "Server", lambda config: mock_server)

    main.main()

    mock_server.run.assert_called_once_with()

def test_main_exits_on_server_error(settings, monkeypatch):
    mock_server = MagicMock()
    mock_server.run.side_effect = OSError("Address already in use")
    monkeypatch.setattr(main, "load_settings", lambda: settings)
    monkeypatch.setattr(main.uvicorn, "Server", lambda config: mock_server)

    with pytest.raises(SystemExit) as exc_info:
        main.main()
    assert exc_info.value.code == 1
