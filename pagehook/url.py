"""
URL splitting for route matching.

Route rules compare against the path, query and fragment of a page URL.
Single-page applications commonly keep their route in the fragment
(``/app/#/orders/12``), so the fragment is kept as a first-class component
instead of being discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from pagehook.errors import MalformedUrlError


@dataclass(frozen=True)
class ParsedUrl:
    """Components of a page URL.

    ``query`` excludes the leading ``?``; ``fragment`` keeps its leading ``#``.
    """

    url: str
    scheme: str
    hostname: str
    path: str
    query: str = ""
    fragment: str = ""

    @property
    def search(self) -> str:
        """Query string with its ``?`` prefix, or empty."""
        return f"?{self.query}" if self.query else ""

    @property
    def full_path(self) -> str:
        """Path and fragment, ignoring the query."""
        return self.path + self.fragment

    @property
    def normalized_full_path(self) -> str:
        """Path, query and fragment as they appear in the URL."""
        return self.path + self.search + self.fragment

    @property
    def location(self) -> tuple[str, str, str]:
        """``(pathname, search, hash)`` as the page's ``location`` reports them.

        Unlike the query-first split above, the fragment starts at the first
        ``#``, so ``/app#/list?page=2`` gives ``("/app", "", "#/list?page=2")``.
        """
        split = urlsplit(self.url)
        return (
            split.path or "/",
            f"?{split.query}" if split.query else "",
            f"#{split.fragment}" if split.fragment else "",
        )

    @property
    def location_path(self) -> str:
        """Location pathname followed by the location hash."""
        pathname, _, hash_ = self.location
        return pathname + hash_


def _split_authority(url: str) -> tuple[str, str]:
    """Split ``scheme://authority/rest`` into authority and rest."""
    _, _, rest = url.partition(":")
    if rest.startswith("//"):
        rest = rest[2:]
    for index, char in enumerate(rest):
        if char in "/?#":
            return rest[:index], rest[index:]
    return rest, ""


def split_path(remainder: str) -> tuple[str, str, str]:
    """Split the part of a URL after its authority into path, query, fragment.

    The first ``?`` separates the path; the first ``#`` after it separates
    the query from the fragment. When there is no ``?`` at all, the path is
    split directly on ``#`` and the query is empty.

    Args:
        remainder: Everything after the authority (e.g. ``/a?x=1#h``).

    Returns:
        Tuple of (path, query, fragment).
    """
    path, query, fragment = remainder, "", ""

    if "?" in remainder:
        path, _, rest = remainder.partition("?")
        query, hash_sep, fragment_body = rest.partition("#")
        fragment = hash_sep + fragment_body
    elif "#" in remainder:
        path, hash_sep, fragment_body = remainder.partition("#")
        fragment = hash_sep + fragment_body

    return path or "/", query, fragment


def parse_url(url: str) -> ParsedUrl:
    """Parse an absolute URL.

    Args:
        url: Absolute URL such as ``https://example.com/a?b=1#c``.

    Returns:
        ParsedUrl with the split components.

    Raises:
        MalformedUrlError: If the URL has no scheme or host.
    """
    if not isinstance(url, str):
        raise MalformedUrlError(repr(url), "not a string")

    url = url.strip()
    try:
        split = urlsplit(url)
        hostname = split.hostname
    except ValueError as e:
        raise MalformedUrlError(url, str(e)) from e

    if not split.scheme or not hostname:
        raise MalformedUrlError(url, "missing scheme or host")

    _, remainder = _split_authority(url)
    path, query, fragment = split_path(remainder)

    return ParsedUrl(
        url=url,
        scheme=split.scheme.lower(),
        hostname=hostname,
        path=path,
        query=query,
        fragment=fragment,
    )


__all__ = [
    "ParsedUrl",
    "parse_url",
    "split_path",
]
