from pydantic import BaseModel


class Member(BaseModel):
    """The Discord user acting on an interaction."""

    id: str
    tag: str
    avatar_url: str | None = None
