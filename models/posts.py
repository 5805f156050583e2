from pydantic import BaseModel, Field, ConfigDict, field_validator
from bson import ObjectId
from datetime import datetime
from typing import Optional

from env import CATEGORIES


class Post(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    title: str
    content: str
    category: str
    imageUrl: Optional[str] = None
    author: Optional[ObjectId] = None  # Reference to Users collection
    likes: int = 0
    views: int = 0
    createdAt: datetime = Field(default_factory=datetime.now)
    updatedAt: datetime = Field(default_factory=datetime.now)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        return v.strip()

    @field_validator("category")
    @classmethod
    def known_category(cls, v):
        if v not in CATEGORIES:
            raise ValueError(f"Unknown category: {v}")
        return v
