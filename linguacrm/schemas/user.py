"""User identity schemas."""

from pydantic import BaseModel


class UserInfo(BaseModel):
    """Identity written into export metadata and attribution fields."""

    model_config = {"from_attributes": True}

    id: str
    username: str
