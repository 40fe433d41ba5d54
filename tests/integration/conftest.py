import json
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from royale.config import Settings
from royale.main import create_app


@pytest.fixture
def questions_file(tmp_path):
    """A one-question bank so a single correct answer wins the game."""
    path = tmp_path / "questions.json"
    path.write_text(json.dumps({
        "questions": [
            {
                "prompt": "Sum of adjacent products",
                "code_template": "lambda arr: 0",
                "validators": [
                    {"args": [[1, 2, 3]], "expected": 8},
                    {"args": [[5]], "expected": 0},
                ],
            },
        ],
    }))
    return path


@pytest.fixture
def make_app(tmp_path, questions_file):
    def factory(**overrides):
        values = {
            "max_player_count": 1,
            "question_timeout_ms": 1500,
            "questions_file": questions_file,
            "static_dir": tmp_path / "build-client",
            "sandbox_timeout_ms": 5000,
        }
        values.update(overrides)
        return create_app(Settings(**values))
    return factory


@pytest_asyncio.fixture
async def client(make_app) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""
    transport = ASGITransport(app=make_app(max_player_count=2))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
