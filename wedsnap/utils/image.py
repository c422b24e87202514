"""Image processing: thumbnails."""

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
    ".gif": "GIF",
}


def make_thumbnail(image_data: bytes, max_edge: int, ext: str = ".jpg") -> bytes:
    """Downscale so the longest edge is at most ``max_edge``, keeping aspect ratio.

    Bytes Pillow cannot decode are returned unchanged.
    """
    try:
        img = Image.open(BytesIO(image_data))
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError):
        return image_data

    fmt = FORMATS.get(ext.lower(), "JPEG")
    thumb = img.copy()
    thumb.thumbnail((max_edge, max_edge), Image.LANCZOS)
    if fmt == "JPEG" and thumb.mode not in ("RGB", "L"):
        thumb = thumb.convert("RGB")

    out = BytesIO()
    thumb.save(out, fmt)
    return out.getvalue()
