from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

class UserCreate(BaseModel):
    login: str = Field(min_length=3, max_length=64)
    name: str = Field(min_length=1)
    age: int = Field(ge=18, le=100)
    gender: str
    city: Optional[str] = None
    about: Optional[str] = None

class UserResponse(BaseModel):
    id: int
    login: str
    name: str
    age: int
    gender: str
    city: Optional[str]
    about: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}

class UserSummary(BaseModel):
    id: int
    name: str
    age: int
    gender: str
    city: Optional[str]
    about: Optional[str]

    model_config = {"from_attributes": True}
