from pydantic import BaseModel
from datetime import datetime


class UserOut(BaseModel):
    id: int
    email: str
    created_at: datetime
    is_active: bool

    class Config:
        from_attributes = True
