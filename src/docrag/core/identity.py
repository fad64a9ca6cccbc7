"""Stable document identities used as embedding cache keys."""

import hashlib
from urllib.parse import urlsplit, urlunsplit


def document_id_from_url(url: str) -> str:
    """Derive a document identity from its origin URL.

    Scheme and host are lower-cased, the fragment and surrounding whitespace
    are dropped; the path and query string are kept as given since they
    usually select the document.
    """
    parts = urlsplit(url.strip())
    normalized = urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def document_id_from_content(text: str) -> str:
    """Derive a document identity from the extracted text itself."""
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()
