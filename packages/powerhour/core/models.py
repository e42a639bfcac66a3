"""Base model for JSON documents persisted by the stores and archives."""

from __future__ import annotations

import json
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class PowerHourModel(BaseModel):
    """Typed core schema with an open ``extensions`` map.

    JSON keys are camelCase on disk. Keys no field knows about are moved into
    ``extensions`` (non-string values JSON-encoded), so documents written by
    newer or older versions load without losing data.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    extensions: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def _known_keys(cls) -> set[str]:
        keys: set[str] = set()
        for name, field in cls.model_fields.items():
            keys.add(name)
            if field.alias:
                keys.add(field.alias)
            if isinstance(field.validation_alias, str):
                keys.add(field.validation_alias)
            elif isinstance(field.validation_alias, AliasChoices):
                keys.update(c for c in field.validation_alias.choices if isinstance(c, str))
        return keys

    @model_validator(mode="before")
    @classmethod
    def _collect_extensions(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known = cls._known_keys()
        unknown = {k: v for k, v in data.items() if k not in known}
        if not unknown:
            return data

        cleaned = {k: v for k, v in data.items() if k in known}
        extensions = dict(cleaned.get("extensions") or {})
        for key, value in unknown.items():
            extensions.setdefault(key, value if isinstance(value, str) else json.dumps(value))
        cleaned["extensions"] = extensions
        return cleaned

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with camelCase keys, ready for ``json.dumps``."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_json_dict(), indent=2)
