import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from pinpoint.api.routes import annotations, editor, health
from pinpoint.core.config import settings
from pinpoint.db.session import build_engine, build_session_factory
from pinpoint.services.annotation_service import AnnotationService


def create_app(session_factory: Optional[sessionmaker] = None) -> FastAPI:
    """Build the application; services are constructed once here and shared via ``app.state``."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.database_url))

    app = FastAPI(title="Pinpoint Annotation Backend", version="0.1.0")
    app.state.session_factory = session_factory
    app.state.annotation_service = AnnotationService(session_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(annotations.router)
    app.include_router(editor.router)

    @app.get("/", summary="Service info")
    def root() -> dict[str, str]:
        return {"message": "Annotation backend is running"}

    return app
