"""URL resolution and canonicalization."""

from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from newsletter_scout.exceptions import MalformedUrl

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _remove_dot_segments(path: str) -> str:
    """Apply RFC 3986 section 5.2.4 to a URL path."""
    output: list[str] = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        if segment == "..":
            if len(output) > 1:
                output.pop()
            continue
        output.append(segment)

    resolved = "/".join(output)
    # A trailing "." or ".." refers to a directory
    if path.endswith(("/.", "/..")):
        resolved += "/"
    if path.startswith("/") and not resolved.startswith("/"):
        resolved = "/" + resolved
    return resolved


def normalize_url(href: str, base: Optional[str] = None) -> str:
    """Resolve an href against a base URL and canonicalize it.

    Canonical form: lowercase scheme and host, no default port, no
    fragment, no dot segments, query preserved, "/" for an empty path and
    no trailing slash on other paths.

    Args:
        href: Absolute or relative URL as found in a document
        base: URL of the document the href was found in

    Returns:
        Canonical absolute URL

    Raises:
        MalformedUrl: If the href cannot be parsed, has no host or is not
            an http(s) URL
    """
    if href is None:
        raise MalformedUrl("", "empty href")
    href = href.strip()
    if not href and not base:
        raise MalformedUrl(href, "empty href")

    try:
        absolute = urljoin(base, href) if base else href
        parts = urlsplit(absolute)
        scheme = parts.scheme.lower()
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        raise MalformedUrl(href, str(e)) from e

    if scheme not in _DEFAULT_PORTS:
        raise MalformedUrl(href, f"unsupported scheme {scheme!r}")
    if not hostname:
        raise MalformedUrl(href, "missing host")

    netloc = hostname.lower()
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = _remove_dot_segments(parts.path) if parts.path else "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    return urlunsplit((scheme, netloc, path, parts.query, ""))


def url_host(url: str) -> str:
    """Return the canonical host (with non-default port) of a URL.

    Raises:
        MalformedUrl: If the URL cannot be parsed
    """
    return urlsplit(normalize_url(url)).netloc


def origin(url: str) -> str:
    """Return scheme://host of a URL."""
    parts = urlsplit(normalize_url(url))
    return f"{parts.scheme}://{parts.netloc}"


def host_in_domains(host: str, domains) -> bool:
    """Check whether a host equals or is a subdomain of any domain."""
    hostname = host.split(":")[0].lower()
    for domain in domains:
        domain = domain.lower().lstrip(".")
        if hostname == domain or hostname.endswith("." + domain):
            return True
    return False
