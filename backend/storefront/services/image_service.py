"""
Image storage for product pictures.

Images are stored in one flat directory under a content-addressed name, so
fetching the same picture twice reuses the existing file.
"""
import asyncio
import hashlib
import logging
import re
from pathlib import Path

import httpx

from storefront.config import Config
from storefront.errors import ErrorType
from storefront.exceptions import AppException

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"


def extension_for(content_type: str) -> str:
    """File extension for an image content type ("image/png; q=1" -> "png")."""
    subtype = content_type.split(";")[0].strip().split("/")[-1].lower()
    # "svg+xml" -> "svg"
    subtype = subtype.split("+")[0]
    return subtype if re.fullmatch(r"[a-z0-9]{1,10}", subtype) else DEFAULT_EXTENSION


def is_image(content_type: str | None) -> bool:
    return bool(content_type) and content_type.strip().lower().startswith("image/")


class ImageStore:
    def __init__(
        self,
        upload_dir: str | Path | None = None,
        url_prefix: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.upload_dir = Path(upload_dir or Config.UPLOAD_DIR)
        self.url_prefix = (url_prefix or Config.UPLOAD_URL_PREFIX).rstrip("/")
        self.timeout = timeout if timeout is not None else Config.IMAGE_FETCH_TIMEOUT
        # Injected in tests (httpx.MockTransport)
        self.transport = transport

    def filename_for(self, data: bytes, content_type: str) -> str:
        digest = hashlib.sha256(data).hexdigest()[:32]
        return f"product_{digest}.{extension_for(content_type)}"

    async def save_bytes(self, data: bytes, content_type: str) -> str:
        """Persist image bytes and return their public relative URL.

        Raises:
            AppException: IMAGE_ERROR if the content type is not an image
        """
        if not is_image(content_type):
            raise AppException(ErrorType.IMAGE_ERROR, f"Invalid image type: {content_type}")

        filename = self.filename_for(data, content_type)
        path = self.upload_dir / filename

        if path.exists():
            logger.info(f"Image already stored: {filename}")
        else:
            await asyncio.to_thread(self._write, path, data)
            logger.info(f"Saved image {filename} ({len(data)} bytes)")

        return f"{self.url_prefix}/{filename}"

    def _write(self, path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write then rename so readers never see a partial file
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)

    async def fetch_and_save(self, url: str) -> str:
        """Download a remote image and store it locally.

        Returns:
            Relative URL of the stored image, e.g. /uploads/product_<hash>.png

        Raises:
            AppException: IMAGE_ERROR on network failure, bad status or non-image content
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching image {url}: {e}")
            raise AppException(ErrorType.IMAGE_ERROR, "Failed to save the image.")

        content_type = response.headers.get("content-type")
        if not is_image(content_type):
            logger.error(f"Invalid image type for {url}: {content_type}")
            raise AppException(ErrorType.IMAGE_ERROR, "Failed to save the image.")

        try:
            return await self.save_bytes(response.content, content_type)
        except OSError as e:
            logger.error(f"Error saving image from {url}: {e}")
            raise AppException(ErrorType.IMAGE_ERROR, "Failed to save the image.")

    def local_path(self, image_url: str | None) -> Path | None:
        """Path on disk for a URL this store produced, else None."""
        if not image_url or not image_url.startswith(self.url_prefix + "/"):
            return None
        name = image_url[len(self.url_prefix) + 1:]
        if not name or "/" in name or name.startswith("."):
            return None
        return self.upload_dir / name

    async def discard(self, image_url: str | None):
        """Remove a stored image; missing files are ignored."""
        path = self.local_path(image_url)
        if path is None:
            return
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            logger.info(f"Removed image {path.name}")
        except OSError as e:
            logger.error(f"Error removing image {path}: {e}")
