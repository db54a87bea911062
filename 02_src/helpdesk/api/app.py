"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from ..app import Application
from .routes import control, exclusions, inbox, observability, transport


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        sim_instance = control.get_sim_instance()
        if sim_instance and hasattr(sim_instance, "set_tracker"):
            if application._tracker:
                sim_instance.set_tracker(application._tracker)
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Helpdesk Bridge API",
        description="Inbound chat intake and operator replies",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Enable CORS for the dashboard dev server
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:5174"],  # Vite default
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    fastapi_app.include_router(inbox.create_inbox_router(application))
    fastapi_app.include_router(transport.create_transport_router(application))
    fastapi_app.include_router(exclusions.create_exclusions_router(application))
    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(control.create_control_router(application))

    uploads_dir = application.settings.uploads_dir
    uploads_dir.mkdir(parents=True, exist_ok=True)
    fastapi_app.mount("/uploads", StaticFiles(directory=uploads_dir), name="uploads")

    return fastapi_app
