"""Map URLs onto the relative file paths used for cached bodies."""

import posixpath
from urllib.parse import urlsplit

from downcache.fetcher.errors import InvalidURL


def url_to_path(url: str) -> str:
    """Return the cache path for a URL: ``{host}/{path}``.

    The query string and fragment are not part of the path, so URLs that
    differ only in their query map to the same file. Dot segments are
    resolved, so a path such as ``/../../x`` yields ``../x``, which lies
    outside the cache directory once joined to it.

    Examples:
        >>> url_to_path("http://Example.com/foo/bar/")
        'example.com/foo/bar'
        >>> url_to_path("https://example.com:8080/data.json?page=2")
        'example.com/data.json'
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except (AttributeError, TypeError, ValueError) as e:
        raise InvalidURL(f"Could not parse URL: {e}", url=url) from e

    if not host:
        raise InvalidURL("URL has no host", url=url)

    p = posixpath.normpath(posixpath.join(host, parts.path.lstrip("/")))
    # drop any trailing "/" without touching the last segment
    return posixpath.join(posixpath.dirname(p), posixpath.basename(p))
