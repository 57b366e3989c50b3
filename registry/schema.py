"""
Asset Registry - Schema Models

This module defines the Pydantic models for asset records and ledger history
entries, together with the text normalization applied to untrusted fields.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


_LINE_BREAKS = re.compile(r'[\r\n]')


def normalize_text(value: Optional[str]) -> str:
    """Strip carriage returns and line feeds, then trim surrounding whitespace."""
    if value is None:
        return ""
    return _LINE_BREAKS.sub('', str(value)).strip()


class Asset(BaseModel):
    """Canonical asset record."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    asset_id: str = Field(..., alias="assetId", description="Unique asset identifier")
    owner: str = Field(..., description="Current controlling party")
    asset_type: str = Field(..., alias="assetType", description="Category label")
    description: str = Field(default="", description="Free text, may be empty")
    value: float = Field(default=0.0, allow_inf_nan=False, description="Monetary value")

    @field_validator('asset_id', 'owner', 'asset_type', mode='before')
    @classmethod
    def validate_required_text(cls, v):
        """Normalize required text fields and reject blanks."""
        if not isinstance(v, str):
            raise ValueError('must be a string')
        v = normalize_text(v)
        if not v:
            raise ValueError('must not be empty')
        return v

    @field_validator('description', mode='before')
    @classmethod
    def validate_description(cls, v):
        """Normalize the optional description."""
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError('must be a string')
        return normalize_text(v)


class HistoryEntry(BaseModel):
    """Single modification of a ledger key."""

    tx_id: str = Field(..., description="Transaction that wrote the value")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    value: str = Field(default="", description="Value written by the transaction")
    is_delete: bool = Field(default=False)
