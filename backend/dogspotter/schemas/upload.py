"""
Dog Spotter Backend — Upload Schemas
=====================================
"""

from typing import Optional

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    message: str = Field(default="Image uploaded successfully")
    image_url: str = Field(description="Public URL of the stored image")


class Base64UploadRequest(BaseModel):
    image: str = Field(min_length=1, description="Base64 data, optionally a data: URL")
    mime_type: Optional[str] = Field(default="image/jpeg")


class DeleteImageRequest(BaseModel):
    image_url: str = Field(min_length=1)
