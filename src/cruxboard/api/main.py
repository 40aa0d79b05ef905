"""Cruxboard API application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from cruxboard import __version__
from cruxboard.api.errors import (
    configuration_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_error_handler,
)
from cruxboard.api.routes.debates import router as debates_router
from cruxboard.api.routes.health import router as health_router
from cruxboard.config import DebateSettings, load_settings
from cruxboard.errors import ConfigurationError
from cruxboard.observability.tracing import configure_tracing
from cruxboard.personas import PersonaRegistry
from cruxboard.services.collaborators import DebateCollaborator, LLMCollaborator
from cruxboard.services.llm.factory import create_llm_client

logger = logging.getLogger(__name__)


def create_app(
    settings: DebateSettings | None = None,
    collaborator: DebateCollaborator | None = None,
    personas: PersonaRegistry | None = None,
) -> FastAPI:
    """Create and configure the Cruxboard FastAPI application.

    Args:
        settings: Settings override. If None, read from the environment.
        collaborator: Collaborator override for testing. If None, built from
            the configured LLM backend.
        personas: Persona registry override. If None, loaded from
            `settings.personas_file` or the bundled defaults.

    Returns:
        Configured FastAPI application instance.

    Raises:
        ConfigurationError: If settings, personas or the LLM backend are invalid.
    """
    settings = settings or load_settings()
    if collaborator is None:
        collaborator = LLMCollaborator(create_llm_client(settings))
    if personas is None:
        personas = PersonaRegistry.from_file(settings.personas_file)

    app = FastAPI(
        title="Cruxboard API",
        description="Multi-agent debates streamed as events",
        version=__version__,
    )
    app.state.settings = settings
    app.state.collaborator = collaborator
    app.state.personas = personas

    configure_tracing()

    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(debates_router)

    logger.info("Cruxboard API ready with %d personas", len(personas.ids))
    return app
