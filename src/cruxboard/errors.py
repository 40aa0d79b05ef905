"""Cruxboard error taxonomy.

Collaborator failures are split by how the engine reacts to them:

- TransientCollaboratorError: rate limiting or a transient service failure,
  retried a fixed number of times before it becomes terminal for that call.
- MalformedResponseError: the response could not be decoded into the expected
  structure. Terminal for that call only.
- ConfigurationError: fatal, raised before any debate state exists.

An attack judged invalid is not an error. It is a normal validation outcome.
"""

from __future__ import annotations


class CruxboardError(Exception):
    """Base class for all cruxboard errors."""

    pass


class CollaboratorError(CruxboardError):
    """A call to an external collaborator failed.

    Attributes:
        operation: Collaborator operation that failed (e.g. "agent_turn").
        persona_id: Persona the call was made for, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        persona_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.persona_id = persona_id


class TransientCollaboratorError(CollaboratorError):
    """Retries for a transient collaborator failure were exhausted."""

    pass


class MalformedResponseError(CollaboratorError):
    """Collaborator output could not be decoded into the expected schema."""

    def __init__(
        self,
        message: str,
        *,
        raw: str = "",
        operation: str | None = None,
        persona_id: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation, persona_id=persona_id)
        self.raw = raw


class ConfigurationError(CruxboardError):
    """Invalid or missing configuration. Raised before any state is created."""

    pass
