"""Application bootstrap and lifecycle management."""

from dataclasses import replace
from datetime import datetime
from typing import Protocol

from .attachments import AttachmentStore
from .config import Settings
from .gate import ExclusionList, KeywordGate
from .inbox import InboxService
from .llm import ILLMProvider, LLMProvider
from .logging_config import get_logger
from .models import InboundEvent
from .pipeline import (
    AutoReplyOrchestrator,
    IntakeOutcome,
    IntakePipeline,
    ReplyDispatcher,
)
from .storage import IStorage, Storage
from .timestamps import ReferenceClock, TableReport, reconcile_all
from .tracker import ITracker, Tracker
from .transport import HttpTransport, ITransport

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        db_path: str | None = None,
        transport: ITransport | None = None,
        llm_provider: ILLMProvider | None = None,
    ):
        self._settings = settings or Settings.from_env()
        if db_path is not None:
            self._settings = replace(self._settings, db_path=db_path)

        # Collaborators may be injected (tests, alternative bridges)
        self._transport: ITransport | None = transport
        self._owns_transport = transport is None
        self._llm: ILLMProvider | None = llm_provider

        # Components (will be initialized in start())
        self._clock = ReferenceClock(self._settings.reference_offset_hours)
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._exclusions: ExclusionList | None = None
        self._attachments: AttachmentStore | None = None
        self._dispatcher: ReplyDispatcher | None = None
        self._orchestrator: AutoReplyOrchestrator | None = None
        self._gate: KeywordGate | None = None
        self._intake: IntakePipeline | None = None
        self._inbox: InboxService | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        self._storage = Storage(settings.db_path, clock=self._clock)
        await self._storage.init()

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. File-backed state
        self._exclusions = ExclusionList(settings.exclusions_path)
        self._attachments = AttachmentStore(self._storage, settings.uploads_dir)
        logger.info(
            "Uploads at %s, exclusions at %s",
            settings.uploads_dir,
            settings.exclusions_path,
        )

        # 4. External collaborators
        if self._transport is None:
            self._transport = HttpTransport(settings.transport_url)
        if self._llm is None:
            self._llm = LLMProvider(model=settings.llm_model)
        logger.info("Transport and LLM provider initialized")

        # 5. Reply side
        self._dispatcher = ReplyDispatcher(self._transport, self._storage, self._attachments)
        self._orchestrator = AutoReplyOrchestrator(
            llm_provider=self._llm,
            dispatcher=self._dispatcher,
            tracker=self._tracker,
            timeout=settings.auto_reply_timeout,
        )

        # 6. Intake side
        self._gate = KeywordGate(
            self._exclusions,
            keywords=settings.keywords,
            max_length=settings.max_message_length,
        )
        self._intake = IntakePipeline(
            gate=self._gate,
            storage=self._storage,
            attachments=self._attachments,
            orchestrator=self._orchestrator,
            tracker=self._tracker,
        )

        # 7. Dashboard operations
        self._inbox = InboxService(
            storage=self._storage,
            attachments=self._attachments,
            dispatcher=self._dispatcher,
            exclusions=self._exclusions,
            tracker=self._tracker,
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._owns_transport and isinstance(self._transport, HttpTransport):
            await self._transport.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    async def handle_event(self, event: InboundEvent) -> IntakeOutcome:
        """Run an inbound chat event through the intake pipeline."""
        return await self.intake.handle(event)

    async def reconcile_timestamps(self, now: datetime | None = None) -> list[TableReport]:
        """Run the legacy created_at backfill over both tables."""
        return await reconcile_all(
            self.storage,
            now=now,
            offset_hours=self._settings.reference_offset_hours,
            tracker=self._tracker,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def transport(self) -> ITransport:
        if not self._transport or not self._storage:
            raise RuntimeError("Application not started")
        return self._transport

    @property
    def intake(self) -> IntakePipeline:
        """Get intake pipeline instance."""
        if not self._intake:
            raise RuntimeError("Application not started")
        return self._intake

    @property
    def inbox(self) -> InboxService:
        """Get inbox service instance."""
        if not self._inbox:
            raise RuntimeError("Application not started")
        return self._inbox
