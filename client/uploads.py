"""Direct-to-media-host uploads using server-issued signatures."""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import aiohttp

from client.http import api_url, fetch_json, session_scope
from client.session import AuthContext
from config import Config
from errors import UpstreamRequestFailed
from models import UploadCredential, UploadedMedia, UploadNamespace

logger = logging.getLogger(__name__)


@dataclass
class MediaFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "MediaFile":
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content=path.read_bytes(), content_type=content_type)


class UploadClient:

    def __init__(
        self,
        auth: AuthContext,
        config: Optional[Config] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.auth = auth
        self._config = config
        self._session = session

    @property
    def config(self) -> Config:
        return self._config or Config.from_env()

    async def get_signature(
        self, namespace: UploadNamespace = UploadNamespace.PROPERTY, folder: Optional[str] = None
    ) -> UploadCredential:
        headers = self.auth.headers()
        params = {"folder": folder} if folder else None

        async with session_scope(self._session) as session:
            payload = await fetch_json(
                session,
                "GET",
                api_url(f"/api/{namespace.route}/cloudinary-signature", self.config),
                failure="Failed to get upload signature",
                headers=headers,
                params=params,
            )

        data = payload.get("data") if isinstance(payload, dict) else None
        required = ("timestamp", "signature", "cloudName", "apiKey")
        if not isinstance(data, dict) or not all(data.get(key) for key in required):
            raise UpstreamRequestFailed("Invalid signature data received from server", body=payload)

        return UploadCredential(
            timestamp=int(data["timestamp"]),
            signature=data["signature"],
            cloud_name=data["cloudName"],
            api_key=data["apiKey"],
            folder=data.get("folder"),
            upload_preset=data.get("uploadPreset") or data.get("upload_preset"),
        )

    def _form(self, file: MediaFile, credential: UploadCredential, folder: str) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field("file", file.content, filename=file.filename, content_type=file.content_type)
        form.add_field("timestamp", str(credential.timestamp))
        form.add_field("signature", credential.signature)
        form.add_field("api_key", credential.api_key)
        form.add_field("folder", folder)
        upload_preset = credential.upload_preset or self.config.upload_preset
        if upload_preset:
            form.add_field("upload_preset", upload_preset)
        return form

    async def upload(
        self,
        file: MediaFile,
        namespace: UploadNamespace = UploadNamespace.PROPERTY,
        folder: Optional[str] = None,
    ) -> UploadedMedia:
        self.auth.require_token()
        credential = await self.get_signature(namespace, folder)
        target_folder = credential.folder or folder or namespace.default_folder
        url = f"{self.config.media_upload_url}/v1_1/{credential.cloud_name}/image/upload"

        async with session_scope(self._session) as session:
            data = await fetch_json(
                session,
                "POST",
                url,
                failure="Image upload failed",
                data=self._form(file, credential, target_folder),
            )

        if not isinstance(data, dict) or not data.get("secure_url"):
            raise UpstreamRequestFailed("Image upload failed: media host returned no URL", body=data)

        logger.info("Uploaded media", extra={"file_name": file.filename, "folder": target_folder})
        return UploadedMedia(url=data["secure_url"], public_id=data.get("public_id", ""))

    async def upload_many(
        self,
        files: Iterable[MediaFile],
        namespace: UploadNamespace = UploadNamespace.PROPERTY,
        folder: Optional[str] = None,
    ) -> List[UploadedMedia]:
        """Upload all files concurrently; the first failure fails the batch."""
        self.auth.require_token()
        uploads = [self.upload(file, namespace, folder) for file in files]
        try:
            return list(await asyncio.gather(*uploads))
        except Exception as e:
            logger.error("Multiple image upload failed", extra={"error": str(e), "files": len(uploads)})
            raise

    async def save_property_images(self, property_id: int, uploaded: Iterable[UploadedMedia]) -> List[Dict[str, Any]]:
        headers = self.auth.headers()
        body = {"cloudinaryUrls": [media.to_dict() for media in uploaded]}

        async with session_scope(self._session) as session:
            payload = await fetch_json(
                session,
                "POST",
                api_url(f"/api/properties/{property_id}/images", self.config),
                failure="Failed to save property images",
                headers=headers,
                json=body,
            )
        return payload.get("data", []) if isinstance(payload, dict) else []
