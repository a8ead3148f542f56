"""Signed upload credentials and media host housekeeping.

Uploads never pass through this API: the browser (or ``client.uploads``)
asks for a short-lived signature and posts the file straight to the media
host. The signature follows the Cloudinary scheme, so any Cloudinary
compatible host accepts it.
"""

import asyncio
import hashlib
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from config import Config
from errors import InvalidRequest, PortalError
from models import UploadCredential, UploadNamespace

logger = logging.getLogger(__name__)

# Parameters the media host leaves out of the string to sign.
UNSIGNED_PARAMS = {"file", "cloud_name", "resource_type", "api_key"}


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def resolve_folder(namespace: UploadNamespace, folder: Optional[str]) -> str:
    if not folder:
        return namespace.default_folder
    folder = folder.strip("/")
    if folder == namespace.default_folder or folder.startswith(namespace.default_folder + "/"):
        return folder
    raise InvalidRequest(
        f"Folder '{folder}' is outside the '{namespace.default_folder}' upload namespace"
    )


class MediaSigner:

    def __init__(self, config: Config):
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.cloud_name and self.config.cloud_api_key and self.config.cloud_api_secret)

    def credential_for(
        self,
        namespace: UploadNamespace,
        folder: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> UploadCredential:
        if not self.configured:
            raise PortalError("Media host credentials are not configured")

        timestamp = timestamp if timestamp is not None else int(round(time.time()))
        params = {
            "timestamp": timestamp,
            "folder": resolve_folder(namespace, folder),
            "upload_preset": self.config.upload_preset,
        }
        return UploadCredential(
            timestamp=timestamp,
            signature=sign_params(params, self.config.cloud_api_secret),
            cloud_name=self.config.cloud_name,
            api_key=self.config.cloud_api_key,
            folder=params["folder"],
            upload_preset=params["upload_preset"],
        )


class MediaHostClient:
    """Server-side calls to the media host. Failures are logged, not raised."""

    def __init__(self, config: Config, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.signer = MediaSigner(config)
        self._session = session

    async def destroy(self, public_id: Optional[str]) -> bool:
        if not public_id:
            return False
        if not self.signer.configured:
            logger.warning("Media host not configured, skipping destroy", extra={"public_id": public_id})
            return False

        timestamp = int(round(time.time()))
        payload = {
            "public_id": public_id,
            "timestamp": timestamp,
            "api_key": self.config.cloud_api_key,
            "signature": sign_params(
                {"public_id": public_id, "timestamp": timestamp}, self.config.cloud_api_secret
            ),
        }
        url = f"{self.config.media_upload_url}/v1_1/{self.config.cloud_name}/image/destroy"

        session = self._session or aiohttp.ClientSession()
        try:
            async with session.post(url, data=payload) as resp:
                if resp.status == 200:
                    return True
                body = await resp.text()
                logger.error(
                    "Media host refused destroy",
                    extra={"public_id": public_id, "status": resp.status, "body": body[:500]},
                )
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                "Error deleting image from media host",
                extra={"public_id": public_id, "error": str(e) or type(e).__name__},
            )
            return False
        finally:
            if self._session is None:
                await session.close()
