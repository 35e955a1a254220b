"""Repository URL normalization.

Accepted forms::

    [scheme://][user[:password]@]host[:port]/owner/name[.git][/more/path][?query][#fragment]
    [user@]host:owner/name[.git]                  (scp-like, as used by ssh)
    host/owner/name                                (no scheme)

Anything that does not fit, or whose host is not supported, resolves to
``None``.
"""

import re
from typing import Iterable, Optional

from dep_inspector.models import CanonicalRepository

DEFAULT_HOSTS = frozenset({"github.com"})

SCHEMES = frozenset({"http", "https", "git", "ssh", "git+https", "git+ssh"})

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._-]+$")
_SCP_RE = re.compile(r"^(?:[A-Za-z0-9._-]+@)?(?P<host>[A-Za-z0-9.-]+):(?P<path>[^/].*)$")
_PORT_RE = re.compile(r":\d*$")


def _split_authority(authority: str) -> str:
    host = authority.rsplit("@", 1)[-1]
    return _PORT_RE.sub("", host)


def _normalize_host(host: str) -> str:
    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def parse_repository_url(
    url: Optional[str],
    hosts: Iterable[str] = DEFAULT_HOSTS,
) -> Optional[CanonicalRepository]:
    """Map a declared repository URL to (host, owner, name)."""
    if not url:
        return None
    url = url.strip()
    if not url or any(c.isspace() for c in url):
        return None

    if "://" in url:
        scheme, rest = url.split("://", 1)
        if scheme.lower() not in SCHEMES:
            return None
        authority, _, path = rest.partition("/")
        host = _split_authority(authority)
    else:
        scp = _SCP_RE.match(url)
        if scp:
            host, path = scp.group("host"), scp.group("path")
        else:
            host, _, path = url.partition("/")

    host = _normalize_host(host)
    if host not in {_normalize_host(h) for h in hosts}:
        return None

    path = re.split(r"[?#]", path, maxsplit=1)[0]
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        return None
    owner, name = segments[0], segments[1]
    if name.lower().endswith(".git"):
        name = name[:-4]
    for segment in (owner, name):
        if not _SEGMENT_RE.match(segment) or segment in (".", ".."):
            return None
    return CanonicalRepository(host=host, owner=owner.lower(), name=name.lower())
