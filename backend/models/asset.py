from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum


class AssetType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"


class AssetCreate(BaseModel):
    name: str = Field(min_length=1)
    type: AssetType
    url: str = Field(min_length=1)
    size: str               # display label, e.g. "2.4 MB"


class Asset(AssetCreate):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    created_at: Optional[str] = Field(default=None, alias="createdAt")
