"""Image storage on Cloudinary through its REST API."""
import hashlib
import logging
import time
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel

from space_together.core.config import settings
from space_together.core.exceptions import DependencyFailedError

logger = logging.getLogger(__name__)

CLOUDINARY_API = "https://api.cloudinary.com/v1_1"


class StoredImage(BaseModel):
    public_id: Optional[str] = None
    url: str


def is_inline_image(value: Optional[str]) -> bool:
    """Data URIs and bare base64 payloads are uploaded; http(s) URLs are kept as links."""
    if not value:
        return False
    return not value.startswith(("http://", "https://"))


def _signature(params: Dict[str, str], api_secret: str) -> str:
    payload = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{payload}{api_secret}".encode("utf-8")).hexdigest()


class MediaClient:
    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        folder: str = "space-together",
        timeout: float = 30.0,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _signed(self, params: Dict[str, str]) -> Dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        params["signature"] = _signature(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def _post(self, action: str, params: Dict[str, str]) -> Dict:
        if not self.configured:
            raise DependencyFailedError("Media service is not configured")
        url = f"{CLOUDINARY_API}/{self.cloud_name}/image/{action}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, data=self._signed(params))
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            logger.warning("Media %s failed: %s", action, exc)
            raise DependencyFailedError(f"Media service {action} failed") from exc

    async def upload(self, data: str) -> StoredImage:
        if not is_inline_image(data):
            return StoredImage(url=data)
        body = await self._post("upload", {"file": data, "folder": self.folder})
        return StoredImage(public_id=body.get("public_id"), url=body.get("secure_url") or body.get("url"))

    async def delete(self, public_id: Optional[str]) -> None:
        if not public_id:
            return
        await self._post("destroy", {"public_id": public_id})


media_client = MediaClient(
    cloud_name=settings.cloudinary_cloud_name,
    api_key=settings.cloudinary_api_key,
    api_secret=settings.cloudinary_api_secret,
    folder=settings.cloudinary_folder,
)


def get_media_client() -> MediaClient:
    return media_client


async def prepare_image_update(
    media: MediaClient,
    values: Dict,
    unset: List[str],
    current_public_id: Optional[str],
    url_field: str = "image",
    id_field: str = "image_id",
) -> Optional[str]:
    """Upload a replacement image found in ``values`` and rewrite the image fields in place.

    Returns the public id that becomes stale once the entity is written, for the
    caller to delete afterwards.
    """
    if url_field in unset:
        unset.append(id_field)
        return current_public_id
    if not values.get(url_field):
        return None
    stored = await media.upload(values[url_field])
    values[url_field] = stored.url
    if stored.public_id:
        values[id_field] = stored.public_id
    else:
        unset.append(id_field)
    if current_public_id and current_public_id != stored.public_id:
        return current_public_id
    return None
