from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def workdir_root(tmp_path: Path) -> Iterator[Path]:
    """Point the transcription pipeline's temp root at a pytest tmp dir."""
    with patch("src.transcription.pipeline.settings") as mock_settings:
        mock_settings.tmp_root = str(tmp_path)
        yield tmp_path / "video-transcriber"


@pytest.fixture
def supabase() -> MagicMock:
    return MagicMock()
