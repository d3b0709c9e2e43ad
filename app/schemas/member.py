from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class MemberRead(BaseModel):
    id: int
    full_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_date: Optional[date] = None
    date_joined: date
    is_executive: bool = False
    profile_image_url: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_date: Optional[date] = None
    date_joined: Optional[date] = None
    is_executive: bool = False
    profile_image_url: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator("date_joined", "birth_date")
    @classmethod
    def not_in_future(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value > date.today():
            raise ValueError("Date cannot be in the future")
        return value


class MemberUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_date: Optional[date] = None
    date_joined: Optional[date] = None
    is_executive: Optional[bool] = None
    profile_image_url: Optional[str] = None
    user_id: Optional[int] = None
