"""Shared fixtures and fakes for the voice-over generator test suite."""

import pytest

from app import jobs
from app.media import MediaFile


# ---------------------------------------------------------------------------
# Autouse fixture: clear job store before each test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_jobs():
    """Ensure every test starts with an empty job store."""
    jobs.jobs.clear()
    yield
    jobs.jobs.clear()


# ---------------------------------------------------------------------------
# Scripted generation client
# ---------------------------------------------------------------------------

class ScriptedClient:
    """Generation client stub returning queued replies and recording calls.

    Each reply is either a string (returned) or an exception (raised).
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[tuple[str, list[dict]]] = []

    async def generate(self, model, contents):
        self.calls.append((model, contents))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture()
def scripted_client():
    """Factory fixture building a ScriptedClient from replies."""
    return ScriptedClient


@pytest.fixture()
def pdf_file():
    return MediaFile.from_bytes("config.pdf", b"%PDF-1.4 config sheet", "application/pdf")


@pytest.fixture()
def video_file():
    return MediaFile.from_bytes("walkaround.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")


# ---------------------------------------------------------------------------
# Temporary directory fixture for file I/O tests
# ---------------------------------------------------------------------------

@pytest.fixture()
def static_dir(tmp_path):
    """Return a fresh temporary directory usable as a staging dir."""
    return str(tmp_path)
