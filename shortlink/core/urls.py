"""URL normalization and validation rules shared by the create and redirect paths."""

from urllib.parse import urlsplit

from pydantic import HttpUrl, TypeAdapter, ValidationError

MAX_URL_LENGTH = 2048

_http_url = TypeAdapter(HttpUrl)


def ensure_scheme(url: str) -> str:
    """Prefix `http://` unless the URL already carries an http(s) scheme.

    Idempotent: applying it to its own output returns the same string.
    """
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"http://{url}"


def is_valid_url(url: str) -> bool:
    """Check that a scheme-qualified URL is a well-formed http(s) URL with a real host."""
    if not url or len(url) > MAX_URL_LENGTH or any(ch.isspace() for ch in url):
        return False
    try:
        parsed = _http_url.validate_python(url)
    except ValidationError:
        return False

    host = parsed.host or ""
    return "." in host or host == "localhost"


def host_of(url: str) -> str:
    """Lower-cased host name of a URL, without port."""
    return (urlsplit(ensure_scheme(url)).hostname or "").lower()


def points_to_domain(url: str, domain: str) -> bool:
    """True when `url` targets `domain` itself or one of its subdomains."""
    own_host = host_of(domain)
    target = host_of(url)
    if not own_host or not target:
        return False
    return target == own_host or target.endswith(f".{own_host}")
