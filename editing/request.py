"""Bearbeitungsanfragen für ein fertiges Raster (Pydantic v2).

Eine Anfrage beschreibt genau eine Aktion:
  - move:   Block verschieben (optional mit Tausch gegen den Zielblock)
  - remove: Block aus dem Raster entfernen

Die Quelle ist entweder eine Rasterzelle (``grid``) oder eine noch
nicht platzierte Stunde aus dem Pool (``pool``).
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from models.lesson import RegularLesson


class EditAction(str, Enum):
    MOVE = "move"
    REMOVE = "remove"


class GridSource(BaseModel):
    """Eine beliebige Zelle des Blocks; der Blockanfang wird rekonstruiert."""

    source_type: Literal["grid"] = "grid"
    class_id: str
    index: int
    load_id: str    # erwartete load_id der Zelle


class PoolSource(BaseModel):
    source_type: Literal["pool"] = "pool"
    lesson: RegularLesson

    @property
    def load_id(self) -> str:
        return self.lesson.load_id


EditSource = Annotated[Union[GridSource, PoolSource], Field(discriminator="source_type")]


class EditTarget(BaseModel):
    class_id: str
    index: int


class EditRequest(BaseModel):
    action: EditAction
    source: EditSource
    target: Optional[EditTarget] = None
    swap: bool = False

    @model_validator(mode="after")
    def _check_shape(self):
        if self.action == EditAction.MOVE and self.target is None:
            raise ValueError("move benötigt ein Ziel (target)")
        if self.action == EditAction.REMOVE:
            if not isinstance(self.source, GridSource):
                raise ValueError("remove benötigt eine Rasterzelle als Quelle")
            if self.swap:
                raise ValueError("swap ist nur bei move zulässig")
        return self
