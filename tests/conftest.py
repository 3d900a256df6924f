"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile
from pathlib import Path

import pytest

# db_pg refuses to import without a URL; route tests share this file database
_TEST_DB = Path(tempfile.mkdtemp(prefix="tutor-tests-")) / "tutor.db"
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB}")

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tutor_app.db_pg import Base  # noqa: E402
from tutor_app import models  # noqa: E402,F401


def run_in_memory_db(scenario, create_tables=True):
    """Run ``scenario(session)`` against a fresh in-memory SQLite database."""
    async def _main():
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        try:
            if create_tables:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            session_factory = async_sessionmaker(engine, expire_on_commit=False)
            async with session_factory() as session:
                return await scenario(session)
        finally:
            await engine.dispose()

    return asyncio.run(_main())


@pytest.fixture
def db_run():
    return run_in_memory_db


class StubGenerator:
    """Async prompt -> text stand-in that records its calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def __call__(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def stub_generator():
    return StubGenerator


@pytest.fixture
def daily_set_json():
    return """{
      "topic": "Food",
      "words": [
        {"latvian": "maize", "english": "bread", "context": "Es ēdu maizi."},
        {"latvian": "piens", "english": "milk", "context": "Piens ir auksts."},
        {"latvian": "siers", "english": "cheese", "context": "Man garšo siers."},
        {"latvian": "ābols", "english": "apple", "context": "Ābols ir sarkans."},
        {"latvian": "zupa", "english": "soup", "context": "Zupa ir karsta."}
      ]
    }"""
