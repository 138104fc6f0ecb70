"""Host name helpers used to compare and rewrite network domains."""

import re


WWW_PREFIX = "www."


def root_domain(host: str) -> str:
    """Reduce a host name to its last two dot-separated labels.

    Examples:
        www.staging.example.com -> example.com
        example.com -> example.com
        localhost -> localhost

    Args:
        host: Host name, optionally carrying subdomain labels

    Returns:
        The root domain. Inputs with fewer than two labels come back unchanged.
    """
    labels = host.strip().split(".")
    return ".".join(labels[-2:])


def same_root_domain(left: str, right: str) -> bool:
    """Check whether two host names share a root domain (case-insensitive)."""
    return root_domain(left).lower() == root_domain(right).lower()


def replace_domain(value: str, old_domain: str, new_domain: str) -> str:
    """Replace every occurrence of ``old_domain`` inside ``value``.

    Matching ignores case, characters outside a match keep their case, and
    ``new_domain`` is inserted literally. This is plain substring replacement,
    so an old domain embedded in an unrelated path segment is rewritten too.
    """
    if not old_domain or not value:
        return value
    pattern = re.compile(re.escape(old_domain), re.IGNORECASE)
    return pattern.sub(lambda _match: new_domain, value)


def strip_www(host: str) -> str:
    """Drop a single leading ``www.`` label."""
    if host[: len(WWW_PREFIX)].lower() == WWW_PREFIX:
        return host[len(WWW_PREFIX) :]
    return host
