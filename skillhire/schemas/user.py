# user.py
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ProfileRead(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)


class TokenData(BaseModel):
    user_id: str
