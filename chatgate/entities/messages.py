"""Canonical conversation messages."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.exceptions import InvalidRoleError


class Role(int, Enum):
    """Message author, stored as an integer."""

    USER = 0
    BOT = 1
    SYSTEM = 2

    @classmethod
    def from_value(cls, value: Union[int, str, "Role"]) -> "Role":
        """
        Convert a stored role value to a Role.

        Accepts the integer form, the enum itself, or the role name
        ("user", "bot", "assistant", "system").

        Raises:
            InvalidRoleError: If the value matches no role
        """
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            if name == "assistant":
                return cls.BOT
            for role in cls:
                if role.name.lower() == name:
                    return role
            raise InvalidRoleError(value)
        if isinstance(value, bool):
            raise InvalidRoleError(value)
        try:
            return cls(value)
        except ValueError:
            raise InvalidRoleError(value) from None


class ContentType(str, Enum):
    """Kind of content part."""

    TEXT = "text"
    IMAGE = "image"


class ContentPart(BaseModel):
    """One unit of message content.

    For images ``data`` is a reference understood by the content cache.
    """

    model_config = ConfigDict(use_enum_values=False, populate_by_name=True)

    type: ContentType
    data: str
    mimetype: Optional[str] = None

    @classmethod
    def text(cls, data: str) -> "ContentPart":
        return cls(type=ContentType.TEXT, data=data)

    @classmethod
    def image(cls, reference: str, mimetype: Optional[str] = None) -> "ContentPart":
        return cls(type=ContentType.IMAGE, data=reference, mimetype=mimetype)


class Message(BaseModel):
    """A chat message with ordered content parts."""

    role: Role
    content: List[ContentPart] = Field(default_factory=list)

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, value: object) -> Role:
        return Role.from_value(value)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.USER, content=[ContentPart.text(text)])

    @classmethod
    def bot(cls, text: str) -> "Message":
        return cls(role=Role.BOT, content=[ContentPart.text(text)])

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=Role.SYSTEM, content=[ContentPart.text(text)])

    def get_text(self) -> Optional[str]:
        """Return the first text part, if any."""
        for part in self.content:
            if part.type == ContentType.TEXT:
                return part.data
        return None

    def joined_text(self, separator: str = "\n") -> str:
        """Return all text parts joined, for wire formats with a single content string."""
        return separator.join(p.data for p in self.content if p.type == ContentType.TEXT)

    @property
    def images(self) -> List[ContentPart]:
        return [p for p in self.content if p.type == ContentType.IMAGE]
