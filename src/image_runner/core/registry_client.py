"""Docker Registry API v2 async pull client implementation."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles.tempfile
import aiohttp

from ..exceptions import AuthError, BlobFetchError, ManifestError
from ..utils.digest import short_digest
from .session import create_session, parse_json_response
from .types import MANIFEST_V2_MEDIA_TYPE, ImageManifest, LayerDescriptor, RegistryConfig

logger = logging.getLogger(__name__)


class RegistryClient:
    """Docker Registry API v2 async client for token-authenticated pulls."""

    def __init__(self, config: Optional[RegistryConfig] = None) -> None:
        """Initialize the registry client.

        Args:
            config: Registry endpoints and transfer settings
        """
        self.config = config or RegistryConfig()
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "RegistryClient":
        """Enter async context manager."""
        if not self.session:
            self.session = await create_session(self.config.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self.session and not self.session.closed:
            await self.session.close()

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            raise RuntimeError("RegistryClient must be used as an async context manager")
        return self.session

    def _repository_url(self, image_name: str) -> str:
        return f"{self.config.registry_url}/v2/{self.config.repository(image_name)}"

    async def authenticate(self, image_name: str) -> str:
        """Obtain a pull-scoped bearer token for an image repository.

        Args:
            image_name: Image name without namespace (e.g., alpine)

        Returns:
            Bearer token string

        Raises:
            AuthError: If the token cannot be obtained
        """
        session = self._require_session()
        scope = f"repository:{self.config.repository(image_name)}:pull"
        params = {"service": self.config.service, "scope": scope}

        try:
            async with session.get(self.config.auth_url, params=params) as resp:
                resp.raise_for_status()
                data = await parse_json_response(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthError(f"Failed to get pull token for {image_name}: {e}") from e
        except ValueError as e:
            raise AuthError(f"Malformed token response for {image_name}: {e}") from e

        token = None
        if isinstance(data, dict):
            # Docker Hub sends both; other token servers may only send access_token
            token = data.get("token") or data.get("access_token")
        if not isinstance(token, str) or not token:
            raise AuthError(f"Token response for {image_name} has no token")

        logger.debug("Obtained pull token for %s", scope)
        return token

    async def get_manifest(self, image_name: str, tag: str, token: str) -> ImageManifest:
        """Retrieve an image manifest from the registry.

        Args:
            image_name: Image name without namespace
            tag: Tag name
            token: Bearer token from authenticate()

        Returns:
            ImageManifest with the ordered layer list

        Raises:
            ManifestError: If retrieval or parsing fails
        """
        session = self._require_session()
        url = f"{self._repository_url(image_name)}/manifests/{tag}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": MANIFEST_V2_MEDIA_TYPE,
        }

        try:
            async with session.get(url, headers=headers) as resp:
                resp.raise_for_status()
                data = await parse_json_response(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ManifestError(f"Failed to get manifest {image_name}:{tag}: {e}") from e
        except ValueError as e:
            raise ManifestError(f"Malformed manifest {image_name}:{tag}: {e}") from e

        manifest = ImageManifest.from_dict(data)
        logger.info("Manifest %s:%s lists %d layer(s)", image_name, tag, len(manifest.layers))
        return manifest

    @asynccontextmanager
    async def fetch_layer_blob(
        self, image_name: str, layer: LayerDescriptor, token: str
    ) -> AsyncIterator[Path]:
        """Download a layer blob into a temporary spill file.

        The file is removed when the context exits, so callers must finish
        with it (extract it) inside the ``async with`` block.

        Args:
            image_name: Image name without namespace
            layer: Layer descriptor from the manifest
            token: Bearer token from authenticate()

        Yields:
            Path to the spill file holding the raw blob

        Raises:
            BlobFetchError: If the download fails
        """
        session = self._require_session()
        url = f"{self._repository_url(image_name)}/blobs/{layer.digest}"
        headers = {
            "Authorization": f"Bearer {token}",
            # Registries may reject a blob request with the wrong media type
            "Accept": layer.media_type,
        }

        async with aiofiles.tempfile.NamedTemporaryFile(
            "wb", prefix="image-runner-blob-", suffix=".tar.gz"
        ) as spill:
            size = 0
            try:
                async with session.get(url, headers=headers) as resp:
                    resp.raise_for_status()
                    async for chunk in resp.content.iter_chunked(self.config.chunk_size):
                        await spill.write(chunk)
                        size += len(chunk)
                await spill.flush()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise BlobFetchError(
                    f"Failed to fetch blob {short_digest(layer.digest)}: {e}"
                ) from e
            except OSError as e:
                raise BlobFetchError(
                    f"Failed to spill blob {short_digest(layer.digest)} to disk: {e}"
                ) from e

            logger.debug("Spilled %s (%d bytes) to %s", short_digest(layer.digest), size, spill.name)
            yield Path(spill.name)
