from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Literal, Optional

Role = Literal["user", "admin"]


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str  # Stored lower-cased, unique index
    password: str  # bcrypt hash
    role: Role = "user"
    createdAt: datetime = Field(default_factory=datetime.now)


class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class Session(BaseModel):
    """Identity claims carried by a signed session token."""
    id: str
    name: str
    email: str
    role: Role = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Session
