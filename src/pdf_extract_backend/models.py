from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Serializes snake_case fields as camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(ApiModel):
    success: bool = True
    id: str
    original_file_name: str
    extracted_text: str
    image_count: int
    images: List[str]


class UploadSummary(ApiModel):
    id: str
    has_text: bool
    has_pdf: bool
    image_count: int
    images: List[str]
    created_at: int


class TextResponse(ApiModel):
    success: bool = True
    text: str


class DeleteResponse(ApiModel):
    success: bool = True
    message: str


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
