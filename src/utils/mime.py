"""Map a declared content type to a file extension and check it against the upload allow-list."""
import mimetypes
from typing import Iterable

from utils.constants import PREFERRED_EXTENSIONS


def media_type(content_type: str) -> str:
    """'image/png; charset=binary' -> 'image/png'."""
    return (content_type or '').split(';', 1)[0].strip().lower()


def extension_for(content_type: str) -> str:
    """Derive an extension (no dot) from a Content-Type header value.

    Falls back to the part after '/' when no mapping is known, so
    'application/zzz-unknown' gives 'zzz-unknown'. Returns '' for an
    empty or slash-less type.
    """
    mtype = media_type(content_type)
    if not mtype:
        return ''

    ext = PREFERRED_EXTENSIONS.get(mtype)
    if ext:
        return ext

    guessed = mimetypes.guess_extension(mtype, strict=False)
    if guessed:
        return guessed.lstrip('.')

    return mtype.split('/', 1)[1] if '/' in mtype else ''


def is_allowed(ext: str, allowed_suffixes: Iterable[str]) -> bool:
    """Case-insensitive membership of ext in the allow-list."""
    if not ext:
        return False
    ext = ext.lower()
    return any(ext == suffix.strip().lower() for suffix in allowed_suffixes)
