import logging
from typing import Optional

import httpx

from tutorhub.config import settings
from tutorhub.utils.errors import BackendRejected, TransientNetworkError, ValidationFailed

logger = logging.getLogger(__name__)


class ImageHostClient:
    """Uploads session covers and material files to the image host."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        upload_url: str = settings.IMAGE_HOST_URL,
        api_key: Optional[str] = settings.IMAGE_HOST_API_KEY,
    ):
        self._http = http
        self._upload_url = upload_url
        self._api_key = api_key

    async def upload(self, filename: str, content: bytes, content_type: str = "image/png") -> str:
        if not self._api_key:
            raise ValidationFailed("Image uploads are not configured", field="image")
        if not content:
            raise ValidationFailed("The selected file is empty", field="image")
        try:
            response = await self._http.post(
                self._upload_url,
                params={"key": self._api_key},
                files={"image": (filename, content, content_type)},
            )
        except httpx.TransportError as exc:
            logger.warning("Image host unreachable: %s", exc)
            raise TransientNetworkError("Image upload failed! Please try again.") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400 or not body.get("success"):
            message = (body.get("error") or {}).get("message") if isinstance(body.get("error"), dict) else None
            logger.warning("Image upload rejected (%s): %s", response.status_code, message)
            raise BackendRejected(message or "Image upload failed!", status_code=502)

        data = body.get("data") or {}
        url = data.get("display_url") or data.get("url")
        if not url:
            raise BackendRejected("Image upload failed!", status_code=502)
        return url
