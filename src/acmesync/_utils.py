import base64
from datetime import datetime, timezone


def b64_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
