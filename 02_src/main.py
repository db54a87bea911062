"""Main entry point for the Helpdesk Bridge."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from helpdesk.api import create_fastapi_app
from helpdesk.api.routes import control
from helpdesk.app import Application
from helpdesk.config import Settings
from helpdesk.logging_config import setup_logging
from sim import Sim


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    settings = Settings.from_env()
    api_url = f"http://{settings.api_host}:{settings.api_port}"

    # Set SIM instance for control router
    control.set_sim_instance(Sim(api_url=api_url))

    # Create FastAPI app
    app = create_fastapi_app(Application(settings=settings))

    # Run with uvicorn
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
