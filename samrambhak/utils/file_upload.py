"""
File Upload Utility - Validate and store profile images.

Supported formats:
- JPEG, PNG, GIF, WebP (checked on the declared content type)

Max file size: 5MB (MAX_UPLOAD_SIZE_MB)
Files land under MEDIA_ROOT and are served from MEDIA_URL.
"""

from pathlib import Path

from fastapi import UploadFile, HTTPException

from samrambhak.core.config import get_settings

# content type -> stored extension
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


async def read_image_upload(file: UploadFile) -> tuple:
    """
    Read and validate an uploaded image.

    Returns:
        Tuple of (content bytes, extension)

    Raises:
        HTTPException(400) on wrong type or size
    """
    settings = get_settings()
    ext = ALLOWED_IMAGE_TYPES.get(file.content_type or "")
    if ext is None:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, GIF, and WebP images are allowed")

    content = await file.read()
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File must be less than {settings.max_upload_size_mb}MB")
    if not content:
        raise HTTPException(status_code=400, detail="File is empty")
    return content, ext


def save_avatar(user_id: int, content: bytes, ext: str) -> str:
    """
    Write avatars/<user_id>/avatar.<ext>, replacing any previous avatar.
    Returns the public URL.
    """
    settings = get_settings()
    folder = Path(settings.media_root) / "avatars" / str(user_id)
    folder.mkdir(parents=True, exist_ok=True)
    for old in folder.glob("avatar.*"):
        old.unlink()
    (folder / f"avatar.{ext}").write_bytes(content)
    return f"{settings.media_url.rstrip('/')}/avatars/{user_id}/avatar.{ext}"
