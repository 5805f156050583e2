from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId
from datetime import datetime
from typing import Optional


class Comment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    postId: ObjectId  # Reference to Posts collection
    userName: str
    content: str
    userId: Optional[str] = None  # Session id of a logged-in commenter
    createdAt: datetime = Field(default_factory=datetime.now)


class CommentRequest(BaseModel):
    postId: Optional[str] = None
    userName: Optional[str] = None
    content: Optional[str] = None
