from typing import Union
from urllib.parse import unquote_plus

import httpx

REDACTED = "REDACTED"
SENSITIVE_PARAMS = ("client_secret", "refresh_token", "access_token")


def sanitize_url(url: Union[httpx.URL, str]) -> httpx.URL:
    """
    Return a copy of ``url`` with credential query values replaced by REDACTED.

    Only the offending ``key=value`` pairs are rewritten; every other byte of
    the query string is kept as it was.
    """
    source = httpx.URL(url)
    query = source.query.decode("ascii")
    if not query:
        return httpx.URL(source)

    pairs = []
    redacted = False
    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        if value and unquote_plus(key) in SENSITIVE_PARAMS:
            pair = f"{key}={REDACTED}"
            redacted = True
        pairs.append(pair)

    if not redacted:
        return httpx.URL(source)
    return source.copy_with(query="&".join(pairs).encode("ascii"))
