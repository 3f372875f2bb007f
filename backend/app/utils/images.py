"""
Image type detection for uploaded and re-hosted files.
"""
from typing import Optional, Tuple

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}


def sniff_extension(data: bytes) -> Optional[str]:
    """Extension from magic bytes, or None if unrecognized."""
    if data[:3] == b"\xff\xd8\xff":
        return "jpg"
    if data[:4] == b"\x89PNG":
        return "png"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data[:4] == b"GIF8":
        return "gif"
    return None


def detect_image_type(
    data: bytes,
    content_type: Optional[str] = None,
    url: Optional[str] = None
) -> Tuple[str, str]:
    """
    Pick file extension and MIME type for image bytes.

    Magic bytes win over the declared content type, which wins over the URL
    suffix. Defaults to jpg.

    Returns:
        Tuple of (extension, content_type)
    """
    ext = sniff_extension(data)

    if ext is None and content_type:
        declared = content_type.split(";", 1)[0].strip().lower()
        for candidate, mime in CONTENT_TYPES.items():
            if declared == mime or (candidate == "jpg" and declared == "image/jpg"):
                ext = candidate
                break

    if ext is None and url:
        suffix = url.split("?", 1)[0].rsplit(".", 1)[-1].lower()
        if suffix == "jpeg":
            suffix = "jpg"
        if suffix in CONTENT_TYPES:
            ext = suffix

    ext = ext or "jpg"
    return ext, CONTENT_TYPES[ext]


def is_image(data: bytes, content_type: Optional[str] = None) -> bool:
    """True if the bytes look like an image or are declared as one."""
    if sniff_extension(data):
        return True
    return bool(content_type and content_type.lower().startswith("image/"))
