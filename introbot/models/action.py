from enum import Enum

from pydantic import BaseModel


class IntroAction(str, Enum):
    START = "start"
    UPDATE = "update"
    DELETE = "delete"
    CONFIRM_DELETE = "confirm_delete"
    CANCEL_DELETE = "cancel_delete"


class ActionPayload(BaseModel):
    """Decoded button identifier: what to do and whose profile it targets."""

    action: IntroAction
    owner_id: str | None = None

    @property
    def requires_owner(self) -> bool:
        return self.action != IntroAction.START
