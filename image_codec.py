"""
DocxCleaner Image Codec

Re-encodes image bytes as JPEG with Pillow. Anything Pillow cannot decode
(vector formats such as EMF/WMF on most platforms, truncated files...) comes
back as MissingCapabilityError so the caller can skip that one image.
"""

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from errors import MissingCapabilityError

DEFAULT_QUALITY = 75
TARGET_EXTENSION = ".jpg"
TARGET_CONTENT_TYPE = "image/jpeg"


def _flatten(img: Image.Image) -> Image.Image:
    """JPEG has no alpha channel or palette - composite onto white."""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def recompress(data: bytes, quality: int = DEFAULT_QUALITY, name: str = "image") -> bytes:
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            out = BytesIO()
            _flatten(img).save(out, format="JPEG", quality=quality)
            return out.getvalue()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise MissingCapabilityError(name, str(e)) from e
