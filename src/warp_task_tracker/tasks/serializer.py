"""Tracker document serialization with schema versioning.

Supports JSON and YAML round-trips of ``TrackerData``.  A
``schemaVersion`` key is embedded in every document written; documents
without one (files written by older trackers) are read as version 1.0.

Classes
-------
- TrackerSerializer   — serialize/deserialize TrackerData to JSON or YAML
- SchemaVersionError  — unsupported schema version on load
"""
from __future__ import annotations

import json
from typing import Any

import yaml

from warp_task_tracker.tasks.state import TrackerData

SCHEMA_VERSION = "1.0"
_SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({"1.0"})
_VERSION_KEY = "schemaVersion"


class SchemaVersionError(ValueError):
    """Raised when a serialised document uses an unsupported schema version."""

    def __init__(self, version: str) -> None:
        self.version = version
        supported = ", ".join(sorted(_SUPPORTED_SCHEMA_VERSIONS))
        super().__init__(
            f"Unsupported schema version {version!r}. "
            f"Supported versions: {supported}"
        )


class TrackerSerializer:
    """Serialize and deserialize ``TrackerData`` documents."""

    # ------------------------------------------------------------------
    # Dict layer
    # ------------------------------------------------------------------

    def to_dict(self, data: TrackerData) -> dict[str, Any]:
        document: dict[str, Any] = {_VERSION_KEY: SCHEMA_VERSION}
        document.update(data.to_document())
        return document

    def from_dict(self, document: dict[str, Any]) -> TrackerData:
        """Validate ``document`` and return the ``TrackerData`` it describes.

        Raises
        ------
        SchemaVersionError
            If the embedded schema version is not supported.
        pydantic.ValidationError
            If the document does not describe valid tracker data.
        """
        if not isinstance(document, dict):
            raise ValueError(
                f"Tracker document must be a mapping, got {type(document).__name__}."
            )
        payload = dict(document)
        version = str(payload.pop(_VERSION_KEY, SCHEMA_VERSION))
        if version not in _SUPPORTED_SCHEMA_VERSIONS:
            raise SchemaVersionError(version)
        return TrackerData.model_validate(payload)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_json(self, data: TrackerData, *, indent: int = 2) -> str:
        return json.dumps(self.to_dict(data), indent=indent)

    def from_json(self, raw: str) -> TrackerData:
        return self.from_dict(json.loads(raw))

    # ------------------------------------------------------------------
    # YAML
    # ------------------------------------------------------------------

    def to_yaml(self, data: TrackerData) -> str:
        return yaml.safe_dump(self.to_dict(data), sort_keys=False, allow_unicode=True)

    def from_yaml(self, raw: str) -> TrackerData:
        return self.from_dict(yaml.safe_load(raw))
