"""Pydantic schemas for the storage API."""
import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Stored names are slugs with an extension: my-image.jpg, document-1.pdf
FILENAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*\.[a-z0-9]+$", re.IGNORECASE)


def _config_forbid(**kwargs):
    return ConfigDict(extra="forbid", **kwargs)


# ----- Files -----
class StorageFileOut(BaseModel):
    model_config = _config_forbid()
    id: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    folder: str
    url: str
    created_at: datetime


class FileMetadataOut(BaseModel):
    model_config = _config_forbid()
    filename: str
    mime_type: str
    size: int
    folder: str
    url: str
    modified_at: datetime
    created_at: datetime


class UploadResponse(BaseModel):
    model_config = _config_forbid()
    success: bool = True
    message: str = "File uploaded successfully"
    data: StorageFileOut


class DeleteRequest(BaseModel):
    model_config = _config_forbid()
    filename: str = Field(min_length=1, max_length=255)
    folder: str

    @field_validator("filename")
    @classmethod
    def _filename_format(cls, v: str) -> str:
        if ".." in v or "//" in v:
            raise ValueError("Invalid filename: path traversal not allowed")
        if not FILENAME_PATTERN.match(v):
            raise ValueError(
                "Invalid filename format. Use alphanumeric characters, hyphens, and include file extension"
            )
        return v


class MessageResponse(BaseModel):
    model_config = _config_forbid()
    success: bool = True
    message: str


# ----- Listing -----
class ListResponse(BaseModel):
    model_config = _config_forbid()
    success: bool = True
    message: str = "Files retrieved successfully"
    files: list[FileMetadataOut]
    page: int
    limit: int
    total: int
    total_pages: int


class UsageResponse(BaseModel):
    model_config = _config_forbid()
    folder: str
    count: int
    total_size: int
    total_size_human: str


SortOrder = Literal["asc", "desc"]


# ----- Avatars -----
class AvatarResponse(BaseModel):
    model_config = _config_forbid()
    url: str | None
    filename: str | None = None


# ----- Errors -----
class ErrorResponse(BaseModel):
    model_config = _config_forbid()
    success: bool = False
    code: str
    message: str
    details: dict | None = None
