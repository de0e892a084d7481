from __future__ import annotations

from pydantic import BaseModel, Field


class ParsedDoc(BaseModel):
    file_name: str
    file_size: int = 0
    text: str
    parsing_warnings: list[str] = Field(default_factory=list)
