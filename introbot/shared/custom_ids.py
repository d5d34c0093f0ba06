from introbot.models.action import ActionPayload, IntroAction

PREFIX = "intro"


def encode_action(payload: ActionPayload) -> str:
    """Build a button custom_id such as ``intro:delete:1234``."""
    if payload.owner_id is None:
        return f"{PREFIX}:{payload.action.value}"
    return f"{PREFIX}:{payload.action.value}:{payload.owner_id}"


def parse_action(custom_id: str | None) -> ActionPayload | None:
    """Parse a button custom_id back into an ActionPayload.

    Returns None for identifiers that do not belong to the intro flow
    or that are malformed.
    """
    if not custom_id:
        return None

    parts = custom_id.split(":")
    if len(parts) not in (2, 3) or parts[0] != PREFIX:
        return None

    try:
        action = IntroAction(parts[1])
    except ValueError:
        return None

    owner_id = parts[2] if len(parts) == 3 else None
    if owner_id is not None and not owner_id.isdigit():
        return None

    payload = ActionPayload(action=action, owner_id=owner_id)
    if payload.requires_owner and owner_id is None:
        return None
    return payload
