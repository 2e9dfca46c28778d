# wholesale_finder/api/schemas.py

"""Request bodies accepted by the HTTP API."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keyword: str
    use_vpn: bool = Field(default=False, alias="useVPN")


class AnalyzeRequest(BaseModel):
    url: str


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    target_language: Literal["en", "zh"] = Field(alias="targetLanguage")
