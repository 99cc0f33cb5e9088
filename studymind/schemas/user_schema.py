# Fichier: studymind/schemas/user_schema.py
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime


class UserBase(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=2, max_length=50)


# Body of POST /auth/register.
class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


# No password here.
class User(UserBase):
    id: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
