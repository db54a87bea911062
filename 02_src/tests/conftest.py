"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_KEYWORDS = ("cek", "tolong", "refund")


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from helpdesk.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from helpdesk.tracker import Tracker

    return Tracker(storage)


@pytest.fixture
def exclusions(tmp_path):
    """Exclusion list backed by a temporary file."""
    from helpdesk.gate import ExclusionList

    return ExclusionList(tmp_path / "excluded.json")


@pytest.fixture
def uploads_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def attachment_store(storage, uploads_dir):
    """Create AttachmentStore writing under a temporary directory."""
    from helpdesk.attachments import AttachmentStore

    return AttachmentStore(storage, uploads_dir)


@pytest.fixture
def mock_transport():
    """Create mock chat transport without a media download endpoint."""
    transport = Mock(spec=["send_text", "send_media"])
    transport.send_text = AsyncMock(return_value=None)
    transport.send_media = AsyncMock(return_value=None)
    return transport


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Test response")
    return llm


@pytest.fixture
def dispatcher(mock_transport, storage, attachment_store):
    from helpdesk.pipeline import ReplyDispatcher

    return ReplyDispatcher(mock_transport, storage, attachment_store)


@pytest.fixture
def orchestrator(mock_llm, dispatcher, tracker):
    """Create AutoReplyOrchestrator with a short timeout."""
    from helpdesk.pipeline import AutoReplyOrchestrator

    return AutoReplyOrchestrator(
        llm_provider=mock_llm,
        dispatcher=dispatcher,
        tracker=tracker,
        timeout=0.2,
    )


@pytest.fixture
def gate(exclusions):
    from helpdesk.gate import KeywordGate

    return KeywordGate(exclusions, keywords=TEST_KEYWORDS, max_length=200)


@pytest.fixture
def intake(gate, storage, attachment_store, orchestrator, tracker):
    """Create IntakePipeline wired to in-memory storage and mocks."""
    from helpdesk.pipeline import IntakePipeline

    return IntakePipeline(
        gate=gate,
        storage=storage,
        attachments=attachment_store,
        orchestrator=orchestrator,
        tracker=tracker,
    )


@pytest.fixture
def inbox(storage, attachment_store, dispatcher, exclusions, tracker):
    from helpdesk.inbox import InboxService

    return InboxService(
        storage=storage,
        attachments=attachment_store,
        dispatcher=dispatcher,
        exclusions=exclusions,
        tracker=tracker,
    )


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every file at a temporary directory."""
    from helpdesk.config import Settings

    return Settings(
        db_path=":memory:",
        exclusions_path=tmp_path / "excluded.json",
        uploads_dir=tmp_path / "uploads",
        keywords=TEST_KEYWORDS,
        auto_reply_timeout=0.2,
    )


@pytest_asyncio.fixture
async def application(settings, mock_transport, mock_llm):
    """Started Application with injected transport and LLM."""
    from helpdesk.app import Application

    app = Application(settings=settings, transport=mock_transport, llm_provider=mock_llm)
    await app.start()
    yield app
    await app.stop()


@pytest_asyncio.fixture
async def client(application):
    """HTTP client talking to the FastAPI app in-process."""
    import httpx

    from helpdesk.api import create_fastapi_app

    api = create_fastapi_app(application)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=api), base_url="http://test"
    ) as c:
        yield c
