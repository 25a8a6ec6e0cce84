"""Request and response bodies of the HTTP API."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ZipType(str, Enum):
    """Which final folder a zip export bundles."""

    ORIGINAL = "original"
    MOBILE = "mobile"


class SelectionRequest(BaseModel):
    """Body of ``POST /api/select``. Both fields are checked by the recorder, not here."""

    model_config = ConfigDict(populate_by_name=True)

    user_name: Any = Field(default=None, alias="userName")
    selected_images: Any = Field(default=None, alias="selectedImages")


class SelectionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    file_name: str = Field(alias="fileName")


class DebugResponse(BaseModel):
    status: str = "ok"
    source_count: int
    web_count: int
    logs: list[str]
