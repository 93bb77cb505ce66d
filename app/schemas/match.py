from pydantic import BaseModel, Field

class LikeRequest(BaseModel):
    liked_user: int = Field(ge=1)

class LikeResponse(BaseModel):
    id: int
    user_id: int
    liked_user: int
    matched: bool

class UnlikeResponse(BaseModel):
    status: str = "unliked"
    liked_user: int
