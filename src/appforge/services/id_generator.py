"""Application identifier generation."""

import uuid


def generate_app_id() -> str:
    """Generate a new application id (a random UUID in canonical form)."""
    return str(uuid.uuid4())
