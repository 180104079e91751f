from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from utmbot.links.sanitizer import sanitize

# Fixed rank of the recognized tag keys in an assembled query string.
TAG_NAMES = ("source", "medium", "campaign", "content", "term")
ALLOWED_SCHEMES = ("http", "https")


class MalformedURLError(ValueError):
    """The source URL cannot be parsed into scheme/host/path/query."""


@dataclass(frozen=True)
class TagFields:
    source: str
    medium: str
    campaign: str
    content: str
    term: str = ""

    def as_pairs(self, prefix: str) -> List[Tuple[str, str]]:
        pairs = []
        for name in TAG_NAMES:
            value = sanitize(getattr(self, name) or "")
            if name == "term" and not value:
                continue
            pairs.append((prefix + name, value))
        return pairs


def is_valid_source_url(text: str) -> bool:
    """Absolute http(s) URL with a host."""
    try:
        parts = urlsplit(text.strip())
    except ValueError:
        return False
    return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.netloc)


def assemble(source_url: str, fields: TagFields, prefix: str = "utm_") -> str:
    """
    Merge the tag fields into the query string of ``source_url``.

    Foreign parameters are kept (sorted by key), existing tag keys are
    replaced, and the tag keys follow in TAG_NAMES order. Scheme, host, path
    and fragment are left as they are, so assembling an assembled link again
    with the same fields returns it unchanged.
    """
    try:
        parts = urlsplit(source_url.strip())
    except ValueError as e:
        raise MalformedURLError(f"cannot parse URL {source_url!r}: {e}") from e
    if not parts.scheme or not parts.netloc:
        raise MalformedURLError(f"URL {source_url!r} has no scheme or host")

    tag_keys = {prefix + name for name in TAG_NAMES}
    foreign = [
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k not in tag_keys
    ]
    foreign.sort(key=lambda kv: kv[0])  # stable: repeated keys keep their order

    query = urlencode(foreign + fields.as_pairs(prefix))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
