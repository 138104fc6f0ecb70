"""Force a protocol scheme onto stored site URLs."""

import logging
import re
from urllib.parse import urlsplit


logger = logging.getLogger(__name__)

SCHEME_SEPARATOR = "//"

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_FORBIDDEN_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")
_SCHEME_WITHOUT_SEPARATOR = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:(?!\d+(?:[/?#]|$))")


def is_valid_url(url: str) -> bool:
    """Check that a URL is well-formed enough to have its scheme rewritten.

    A bare host (``a.com``) counts as valid; the caller synthesizes the
    separator for it, but a ``scheme:`` prefix without ``//`` (``http:/a.com``,
    ``mailto:x@y.com``) is rejected. Whitespace, control characters, a
    non-alphabetic scheme or a missing host also make the URL invalid.
    """
    if not url or _FORBIDDEN_CHARS.search(url):
        return False
    if SCHEME_SEPARATOR not in url and _SCHEME_WITHOUT_SEPARATOR.match(url):
        return False

    candidate = url if SCHEME_SEPARATOR in url else SCHEME_SEPARATOR + url
    prefix = candidate.split(SCHEME_SEPARATOR, 1)[0]
    if prefix:
        if not prefix.endswith(":") or not _SCHEME_PATTERN.match(prefix[:-1]):
            return False

    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
    except ValueError:
        return False
    return bool(hostname)


def set_url_scheme(scheme: str | None, url: str) -> str:
    """Rewrite the protocol of ``url`` to ``scheme``.

    Everything after the first ``//`` is preserved verbatim, including any
    further ``//`` inside the path. URLs without a separator get
    ``scheme://`` prepended.

    Args:
        scheme: "http" or "https"; empty or None leaves the URL untouched
        url: URL to rewrite

    Returns:
        The rewritten URL, or ``url`` itself when no scheme is requested or the
        URL does not validate. Malformed URLs pass through instead of failing
        the migration.
    """
    if not scheme:
        return url
    if not is_valid_url(url):
        logger.debug("Leaving malformed URL untouched: %r", url)
        return url

    if SCHEME_SEPARATOR not in url:
        return f"{scheme}:{SCHEME_SEPARATOR}{url}"

    _, remainder = url.split(SCHEME_SEPARATOR, 1)
    return f"{scheme}:{SCHEME_SEPARATOR}{remainder}"
