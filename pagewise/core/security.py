"""Privacy helpers."""

import hashlib


def hash_prompt(prompt: str) -> str:
    """SHA-256 hex digest of a prompt; what Smart mode persists instead of the text."""
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()
