"""Datenmodell für eine Schulklasse (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel


class SchoolClass(BaseModel):
    """Eine Klasse bzw. Lerngruppe, für die ein Wochenraster geführt wird."""

    id: str                      # "5a", "10f"
    name: Optional[str] = None   # Anzeigename, z.B. "Klasse 5a"

    @property
    def display_name(self) -> str:
        return self.name or self.id
