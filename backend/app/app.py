"""FastAPI application."""

import argparse
import logging
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutor.configs import settings
from tutor.controllers.chat_controllers import chat_router
from tutor.repositories.interactions.database import Base, engine
from tutor.repositories.interactions import models  # noqa: F401


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the tables and build the FastAPI application."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully!")

    logger.info("Starting FastAPI application...")
    application = FastAPI(
        title="Classroom Tutor API",
        root_path=settings.ROOT_PATH_BACKEND,
        description="Chat tutor endpoints with summarized conversation context",
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(chat_router)

    @application.get("/", response_description="Api healthcheck")
    async def index() -> Dict[str, str]:
        """Define a route for handling HTTP GET requests to the root URL ("/")."""
        return {"status": "ok"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", required=True, help="Application host.")
    parser.add_argument("--port", required=True, help="Application port.")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development purposes.",
    )
    args = parser.parse_args()

    uvicorn.run("app:app", host=args.host, port=int(args.port), reload=args.reload)
