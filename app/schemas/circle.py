from pydantic import BaseModel, Field


class CircleCreateIn(BaseModel):
    tg_user_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)


class CircleInviteIn(BaseModel):
    tg_user_id: int = Field(gt=0)
    username: str = Field(min_length=1, max_length=255)


class CircleJoinIn(BaseModel):
    tg_user_id: int = Field(gt=0)
    invite_code: str = Field(min_length=4, max_length=8)


class CircleMemberIn(BaseModel):
    tg_user_id: int = Field(gt=0)
