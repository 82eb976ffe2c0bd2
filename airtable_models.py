"""
Record shapes exchanged with the Airtable REST API.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """
    One Airtable row.

    An empty ``id`` means the record has not been created remotely yet.
    ``created_time`` is assigned by the server and only filled on reads.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    fields: Dict[str, Any] = Field(default_factory=dict)
    created_time: str = Field(default="", alias="createdTime")

    def to_payload(self) -> Dict[str, Any]:
        """Body entry for a write request: ``{"id", "fields"}``, id omitted when empty."""
        out: Dict[str, Any] = {}
        if self.id:
            out["id"] = self.id
        out["fields"] = dict(self.fields)
        return out


class RecordPage(BaseModel):
    """One page of a list response. ``offset`` is set when more pages exist."""

    records: List[Record] = Field(default_factory=list)
    offset: Optional[str] = None


@dataclass(frozen=True)
class RequestTarget:
    base: str
    table: str
    filter_formula: str = ""

    def url(self, base_url: str) -> str:
        parts = [base_url.rstrip("/"), quote(self.base, safe=""), quote(self.table, safe="")]
        return "/".join(parts)

    def params(self) -> Dict[str, str]:
        params = {}
        if self.filter_formula:
            params["filterByFormula"] = self.filter_formula
        return params
