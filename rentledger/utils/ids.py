import uuid


def new_id() -> str:
    """Opaque document / entry id."""
    return uuid.uuid4().hex
