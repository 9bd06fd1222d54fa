"""
Regulation record model.

A Regulation is one row of the regulations table:
- id: Store-assigned numeric identifier
- prefecture / city: Administrative region the regulation belongs to
- category: Subject area (e.g. 道路, 環境)
- title / content: Regulation text
- relevance: Optional score in [0, 1], only present on search-result copies
"""

import math
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional

from regulation_search.errors import StoreReadError

TEXT_FIELDS = ("prefecture", "city", "category", "title", "content")


@dataclass(frozen=True)
class Regulation:
    """Immutable regulation record."""
    id: int
    prefecture: str = ""
    city: str = ""
    category: str = ""
    title: str = ""
    content: str = ""
    relevance: Optional[float] = None

    def __post_init__(self):
        if self.relevance is not None:
            if isinstance(self.relevance, bool) or not isinstance(self.relevance, (int, float)):
                raise ValueError(f"relevance must be a number, got {type(self.relevance)}")
            if math.isnan(self.relevance) or not (0.0 <= self.relevance <= 1.0):
                raise ValueError(f"relevance must be within [0, 1], got {self.relevance}")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Regulation':
        """
        Build a Regulation from a store row.

        Missing or null text columns become empty strings; extra columns are ignored.

        Args:
            row: Dictionary as returned by the store

        Returns:
            Regulation instance (without relevance)

        Raises:
            StoreReadError: If the row has no usable integer id
        """
        if not isinstance(row, dict):
            raise StoreReadError(f"Invalid regulation row: {row!r}")

        raw_id = row.get("id")
        if isinstance(raw_id, bool) or raw_id is None:
            raise StoreReadError(f"Regulation row without id: {row!r}")
        try:
            reg_id = int(raw_id)
        except (TypeError, ValueError):
            raise StoreReadError(f"Regulation row with non-numeric id: {raw_id!r}")

        fields = {}
        for name in TEXT_FIELDS:
            value = row.get(name)
            fields[name] = "" if value is None else str(value)

        return cls(id=reg_id, **fields)

    def with_relevance(self, relevance: float) -> 'Regulation':
        """Return a scored copy; the original is left untouched."""
        return replace(self, relevance=float(relevance))

    def projection(self, index: int) -> Dict[str, Any]:
        """Serialized view sent to the scoring model."""
        return {
            "index": index,
            "prefecture": self.prefecture,
            "city": self.city,
            "category": self.category,
            "title": self.title,
            "content": self.content,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting relevance when unscored."""
        result = asdict(self)
        if self.relevance is None:
            del result["relevance"]
        return result


def regulations_from_rows(rows: List[Dict[str, Any]]) -> List[Regulation]:
    """Convert a list of store rows into Regulation records."""
    return [Regulation.from_row(row) for row in rows]
