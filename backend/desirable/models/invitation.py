"""
Invitation Code Model
Registration is gated by single-use invitation codes.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class InvitationCode(BaseModel):
    """A single-use invitation code, stored upper-cased"""
    code: str
    is_used: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    used_at: Optional[datetime] = None
    used_by: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return normalize_invitation_code(value)

    def to_document(self) -> dict:
        document = self.model_dump(by_alias=True, mode="json")
        document["id"] = self.code
        return document


def normalize_invitation_code(code: str) -> str:
    return code.strip().upper()
