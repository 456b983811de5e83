"""Input models for raw graph payloads from the analysis backend or local scanner."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Local scanner (camelCase) key -> backend property key
_LOCAL_PROPERTY_KEYS: Dict[str, str] = {
    "filePath": "file_path",
    "parentId": "parent_id",
    "lineNumber": "start_line",
    "endLineNumber": "end_line",
    "extension": "extension",
    "language": "language",
    "depth": "depth",
    "status": "status",
}


class RawNode(BaseModel):
    """A node as delivered upstream, before identifier normalization."""

    id: str = Field(..., description="Backend- or scanner-specific identifier")
    type: str = Field(default="Module", description="Node type, e.g. File, Function")
    label: Optional[str] = Field(default=None, description="Display label if provided")
    properties: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        if value is None or value == "":
            return "Module"
        return value if isinstance(value, str) else str(value)

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return None

    @field_validator("properties", mode="before")
    @classmethod
    def _coerce_properties(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    def prop(self, *keys: str) -> Any:
        """Return the first non-empty property among *keys*."""
        for key in keys:
            value = self.properties.get(key)
            if value not in (None, ""):
                return value
        return None

    @classmethod
    def from_local(cls, payload: Dict[str, Any]) -> "RawNode":
        """Adapt a local filesystem/AST scanner node dict.

        Scanner nodes carry their metadata at the top level in camelCase
        and use absolute paths as ids.
        """
        raw_properties = payload.get("properties")
        properties: Dict[str, Any] = dict(raw_properties) if isinstance(raw_properties, dict) else {}
        for local_key, prop_key in _LOCAL_PROPERTY_KEYS.items():
            if payload.get(local_key) is not None and prop_key not in properties:
                properties[prop_key] = payload[local_key]
        label = payload.get("label") or payload.get("name")
        if label and "name" not in properties:
            properties["name"] = label
        return cls(
            id=payload["id"],
            type=payload.get("type") or "module",
            label=label,
            properties=properties,
        )


class RawEdge(BaseModel):
    """An edge whose endpoints may use raw ids or bare symbol names."""

    source: str
    target: str
    type: str = "IMPORTS"
    id: Optional[str] = None

    @field_validator("source", "target", "id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        if value is None or value == "":
            return "IMPORTS"
        return value if isinstance(value, str) else str(value)


class RawGraph(BaseModel):
    nodes: List[RawNode] = Field(default_factory=list)
    edges: List[RawEdge] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], local: bool = False) -> "RawGraph":
        """Validate a JSON payload entry by entry.

        Malformed entries are skipped with a log line instead of failing
        the whole graph. Set *local* for scanner output.
        """
        nodes: List[RawNode] = []
        for item in payload.get("nodes") or []:
            try:
                if local and isinstance(item, dict):
                    nodes.append(RawNode.from_local(item))
                else:
                    nodes.append(RawNode.model_validate(item))
            except (ValidationError, KeyError) as exc:
                logger.warning("Skipping malformed raw node %r: %s", item, exc)

        edges: List[RawEdge] = []
        for item in payload.get("edges") or []:
            try:
                edges.append(RawEdge.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed raw edge %r: %s", item, exc)

        return cls(nodes=nodes, edges=edges)
