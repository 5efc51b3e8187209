from typing import Optional

from fastapi import Request

from tourassist.core.config import settings


def get_client_ip(request: Request, trust_forwarded: Optional[bool] = None) -> str:
    """
    Extracts the client's IP address from the request.

    Used as the chatbot rate-limit key, so by default only the socket peer
    counts: a client can put anything in 'x-forwarded-for'. Behind a trusted
    reverse proxy set TRUST_FORWARDED_FOR and the first entry of that header
    is used instead.
    """
    if trust_forwarded is None:
        trust_forwarded = settings.TRUST_FORWARDED_FOR

    if trust_forwarded:
        x_forwarded_for = request.headers.get("x-forwarded-for")
        if x_forwarded_for and x_forwarded_for.split(',')[0].strip():
            return x_forwarded_for.split(',')[0].strip()

    return request.client.host if request.client else "unknown"
