"""
User Models
Defines user-related data structures.
"""
from datetime import datetime
from typing import Optional
from pydantic import AliasChoices, BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel


class UserCreate(BaseModel):
    """Registration request"""
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    mother_language: Optional[str] = None
    invitation_code: str = Field(..., min_length=1)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class User(BaseModel):
    """User model"""
    id: str
    email: EmailStr
    name: str
    password_hash: str
    mother_language: str = Field(default="English")
    current_level: int = Field(default=1)
    is_admin: bool = Field(default=False)
    has_completed_onboarding: bool = Field(default=False)
    learning_subject: str = Field(default="dutch")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class UserResponse(BaseModel):
    """User response model (without sensitive data)"""
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    email: EmailStr
    name: str
    mother_language: str
    current_level: int
    is_admin: bool
    has_completed_onboarding: bool
    learning_subject: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.model_dump(exclude={"password_hash", "created_at"}))


class UserLogin(BaseModel):
    """Login request model"""
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Register/login response: user identity plus a bearer token"""
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    name: str
    email: EmailStr
    token: str
