from hashlib import sha256


def short_hash(value: str, length: int = 16) -> str:
    """Hash an identifier (IP, email, limiter key) for logging without exposing it."""
    return sha256(value.encode("utf-8")).hexdigest()[:length]
