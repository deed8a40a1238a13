"""
HTTP header helpers: RFC 5987 Content-Disposition.
Starlette headers are latin-1 only, so non-ASCII filenames (customer names) go into filename*.
"""
import re
from urllib.parse import quote

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def ascii_filename(name: str) -> str:
    """Fallback filename: anything outside [A-Za-z0-9._-] becomes '_'."""
    return _UNSAFE.sub("_", name).strip("_") or "download"


def build_content_disposition(filename: str, ascii_fallback: str = "") -> str:
    """
    attachment; filename="<ascii>"; filename*=UTF-8''<urlencoded>

        build_content_disposition("BAPP_Progress_2025.xlsx")
    """
    ascii_part = f'attachment; filename="{ascii_fallback or ascii_filename(filename)}"'
    return f"{ascii_part}; filename*=UTF-8''{quote(filename, safe='')}"
