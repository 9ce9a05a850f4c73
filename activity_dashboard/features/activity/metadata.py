"""
Static display metadata for entities (label, handle, emoji).

Loaded once at startup and injected into the query service. Aggregation never
reads it; unknown ids get a placeholder derived from the id itself.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

logger = logging.getLogger("activity_dashboard")

FALLBACK_EMOJI = "•"


class EntityMeta(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handle: str
    display_name: str = Field(alias="displayName")
    emoji: str = FALLBACK_EMOJI


DEFAULT_ENTITY_META: Dict[str, EntityMeta] = {
    "green": EntityMeta(handle="@PassikiAI", display_name="Passiki", emoji="🟢"),
    "orange": EntityMeta(handle="@Builtforyou28", display_name="Built For You", emoji="🟠"),
    "purple": EntityMeta(handle="@quit9to5life", display_name="Quit 9-5 Life", emoji="🟣"),
    "blue": EntityMeta(handle="@automateprofit", display_name="Automate Profit", emoji="🔵"),
    "red": EntityMeta(handle="@sidehustlecashh", display_name="Side Hustle Cash", emoji="🔴"),
    "yellow": EntityMeta(handle="@wifilifestyle", display_name="Laptop Lifestyle", emoji="🟡"),
    "cyan": EntityMeta(handle="@ecomtactics_", display_name="Ecom Tactics", emoji="🩵"),
    "pink": EntityMeta(handle="@startingfrom0_", display_name="Starting From Zero", emoji="💗"),
    "black": EntityMeta(handle="@aitoolstack_", display_name="AI Tool Stack", emoji="⬛"),
    "white": EntityMeta(handle="@_wealthsystems_", display_name="Wealth Systems", emoji="⬜"),
}

_TABLE_ADAPTER = TypeAdapter(Dict[str, EntityMeta])


class EntityMetadata:
    """Read-only entityId -> display metadata table."""

    def __init__(self, table: Optional[Mapping[str, EntityMeta]] = None):
        self._table: Dict[str, EntityMeta] = dict(DEFAULT_ENTITY_META if table is None else table)

    @classmethod
    def from_file(cls, path: str) -> "EntityMetadata":
        """Load a JSON object of {entityId: {handle, displayName, emoji}}."""
        raw = Path(path).read_text(encoding="utf-8")
        table = _TABLE_ADAPTER.validate_python(json.loads(raw))
        logger.info(f"Loaded display metadata for {len(table)} entities from {path}")
        return cls(table)

    @classmethod
    def from_settings(cls, cfg) -> "EntityMetadata":
        path = getattr(cfg, "ENTITY_METADATA_PATH", None)
        if path:
            return cls.from_file(path)
        return cls()

    def lookup(self, entity_id: str) -> EntityMeta:
        meta = self._table.get(entity_id)
        if meta is not None:
            return meta
        return EntityMeta(handle=f"@{entity_id}", display_name=entity_id, emoji=FALLBACK_EMOJI)
