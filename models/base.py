"""
Base model for all draft assistant entities

Provides common functionality for data validation and conversion from
database rows.
"""
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel


class DraftBaseModel(BaseModel):
    """Base model for all persisted entities with common functionality."""

    model_config = {
        "validate_assignment": True,
        "use_enum_values": True,
        "arbitrary_types_allowed": True,
    }

    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __repr__(self):
        fields = ', '.join(f'{k}={v}' for k, v in self.model_dump(exclude_none=True).items())
        return f"{self.__class__.__name__}({fields})"

    def to_dict(self, exclude_none: bool = True) -> Dict[str, Any]:
        """Convert model to dictionary, optionally excluding None values."""
        return self.model_dump(exclude_none=exclude_none)

    @classmethod
    def from_db_row(cls, row: Mapping[str, Any]):
        """Create model instance from a database row mapping."""
        if not row:
            raise ValueError(f"Cannot create {cls.__name__} from empty row")
        return cls(**dict(row))
