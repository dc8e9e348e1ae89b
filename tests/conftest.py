import pytest
import pytest_asyncio
import os
import sys
import tempfile
from pathlib import Path

# Keep log files out of the working tree, must be set before shared.logging_config is imported
os.environ.setdefault("DISK_MANAGER_LOG_DIR", tempfile.mkdtemp(prefix="disk-manager-logs-"))

# Add the project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import httpx
from fastapi.testclient import TestClient

from backend.server import create_app
from shared.config import Settings

@pytest.fixture
def storage_dir(tmp_path):
    """Storage root for a single test, created by the app itself"""
    return tmp_path / "storage"

@pytest.fixture
def test_settings(storage_dir):
    return Settings(storage_dir=storage_dir, host="127.0.0.1", http_port=3001)

@pytest.fixture
def app(test_settings):
    return create_app(test_settings)

@pytest.fixture
def client(app):
    return TestClient(app)

@pytest_asyncio.fixture
async def async_client(app):
    """Create an async test client"""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

@pytest.fixture
def test_directory(storage_dir, app):
    """
    Populate the storage root with:

        project/a.txt
        project/sub/b.txt
        project/sub2/        (empty)
    """
    project = storage_dir / "project"
    (project / "sub").mkdir(parents=True)
    (project / "sub2").mkdir()
    (project / "a.txt").write_text("alpha")
    (project / "sub" / "b.txt").write_text("bravo")
    return project
