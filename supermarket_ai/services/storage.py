# supermarket_ai/services/storage.py
import os
import uuid

from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError

from supermarket_ai.services import ServiceError

IMAGE_PREFIX = "product-images"


def _uploads_dir() -> str:
    d = os.path.join(current_app.config["UPLOAD_FOLDER"], IMAGE_PREFIX)
    os.makedirs(d, exist_ok=True)
    return d


def _safe_uuid_name(ext: str = ".webp") -> str:
    return f"{uuid.uuid4().hex}{ext.lower()}"


def public_url(relative_path: str) -> str:
    base = current_app.config.get("PUBLIC_UPLOAD_URL", "/static/uploads").rstrip("/")
    return f"{base}/{relative_path}"


def _stream_size(fs) -> int:
    stream = fs.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def save_image(fs) -> str:
    """
    Normalize an uploaded image and store it under product-images/.
    - EXIF orientation
    - RGB (transparent areas flattened onto white)
    - max 1600x1600
    - WebP (quality 85)
    Returns the public URL.
    """
    if fs is None or not fs.filename:
        raise ServiceError("Error uploading image: no file selected")

    max_bytes = current_app.config.get("MAX_IMAGE_BYTES", 5 * 1024 * 1024)
    if _stream_size(fs) > max_bytes:
        raise ServiceError("File size must be less than 5MB", 413)

    mimetype = (fs.mimetype or "").lower()
    if mimetype and not mimetype.startswith("image/"):
        raise ServiceError("Error uploading image: only image files are allowed")

    try:
        img = Image.open(fs.stream)
        img = ImageOps.exif_transpose(img)
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
        img.thumbnail((1600, 1600), Image.Resampling.LANCZOS)

        if img.mode == "RGBA":
            bg = Image.new("RGB", img.size, (255, 255, 255))
            bg.paste(img, mask=img.split()[-1])
            img = bg

        out_name = _safe_uuid_name(".webp")
        img.save(os.path.join(_uploads_dir(), out_name), format="WEBP", quality=85, method=6)
    except (UnidentifiedImageError, OSError) as e:
        raise ServiceError(f"Error uploading image: {e}")

    rel = f"{IMAGE_PREFIX}/{out_name}"
    current_app.logger.info("Stored product image %s", rel)
    return public_url(rel)


def delete_image(url: str | None) -> bool:
    """Remove an image we stored ourselves; external URLs are left alone."""
    if not url:
        return False
    prefix = public_url(IMAGE_PREFIX + "/")
    if not url.startswith(prefix):
        return False
    name = os.path.basename(url[len(prefix):])
    path = os.path.join(_uploads_dir(), name)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError:
        current_app.logger.exception("Could not remove image %s", path)
        return False
    return True
