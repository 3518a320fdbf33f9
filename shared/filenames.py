from typing import Optional


def sanitize_filename(raw: Optional[str]) -> Optional[str]:
    """
    Reduce a caller supplied filename to a single path segment.
    Returns None when nothing usable is left.
    """
    if not raw:
        return None
    name = raw.replace("\\", "/").rstrip("/").split("/")[-1].strip()
    if name in ("", ".", ".."):
        return None
    return name
