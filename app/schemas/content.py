from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from app.models.enums import WritingType, NotificationType


class ProgramRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    venue: Optional[str] = None
    starts_at: datetime
    created_by_user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProgramCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    venue: Optional[str] = None
    starts_at: datetime


class WritingRead(BaseModel):
    id: int
    type: WritingType
    title: str
    content: str
    author_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WritingCreate(BaseModel):
    type: WritingType = WritingType.MINUTES
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class WritingUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class NotificationRead(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    read: bool

    class Config:
        from_attributes = True
