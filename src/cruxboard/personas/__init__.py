"""Persona loading.

Personas are defined in YAML. Resolution order for the persona file:
1. An explicit path passed to `load_personas`.
2. CRUXBOARD_PERSONAS_FILE (via `DebateSettings.personas_file`).
3. The bundled `cruxboard/personas/default_personas.yaml`.

The file must be a mapping with a `personas` list. Loading fails closed with
ConfigurationError on a missing file, invalid YAML or an invalid entry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from importlib.resources import files
from pathlib import Path

import yaml
from pydantic import ValidationError

from cruxboard.errors import ConfigurationError
from cruxboard.models.persona import Persona

logger = logging.getLogger(__name__)

DEFAULT_PERSONAS_FILENAME = "default_personas.yaml"


def _read_personas_text(path: str | Path | None) -> tuple[str, str]:
    if path is not None:
        file_path = Path(path)
        try:
            return file_path.read_text(encoding="utf-8"), str(file_path)
        except OSError as e:
            raise ConfigurationError(f"Cannot read personas file {file_path}: {e}") from e

    resource = files("cruxboard.personas").joinpath(DEFAULT_PERSONAS_FILENAME)
    return resource.read_text(encoding="utf-8"), DEFAULT_PERSONAS_FILENAME


def load_personas(path: str | Path | None = None) -> list[Persona]:
    """Load personas from YAML.

    Args:
        path: Persona file. None loads the bundled defaults.

    Returns:
        Personas in file order.

    Raises:
        ConfigurationError: If the file is missing, malformed, or repeats an id.
    """
    content, source = _read_personas_text(path)
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in personas file {source}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("personas"), list):
        raise ConfigurationError(f"Personas file {source} must contain a 'personas' list")

    personas = []
    for index, entry in enumerate(data["personas"]):
        try:
            personas.append(Persona.model_validate(entry))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid persona #{index} in {source}: {e}") from e

    ids = [p.id for p in personas]
    if len(set(ids)) != len(ids):
        raise ConfigurationError(f"Duplicate persona ids in {source}")

    logger.debug("Loaded %d personas from %s", len(personas), source)
    return personas


class PersonaRegistry:
    """Personas indexed by id."""

    def __init__(self, personas: Iterable[Persona]) -> None:
        self._personas = {p.id: p for p in personas}

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> PersonaRegistry:
        return cls(load_personas(path))

    @property
    def ids(self) -> list[str]:
        return list(self._personas)

    def all(self) -> list[Persona]:
        return list(self._personas.values())

    def get(self, persona_id: str) -> Persona | None:
        return self._personas.get(persona_id)

    def resolve(self, persona_ids: Iterable[str]) -> list[Persona]:
        """Look up personas in the given order.

        Raises:
            ConfigurationError: If any id is unknown.
        """
        requested = list(persona_ids)
        unknown = [pid for pid in requested if pid not in self._personas]
        if unknown:
            raise ConfigurationError(
                f"Unknown persona id(s): {', '.join(unknown)}. "
                f"Available: {', '.join(self._personas)}"
            )
        return [self._personas[pid] for pid in requested]


__all__ = ["DEFAULT_PERSONAS_FILENAME", "PersonaRegistry", "load_personas"]
