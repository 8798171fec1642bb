"""Test helpers: layer builders and an in-process fake registry."""

import hashlib
import io
import json
import tarfile
from dataclasses import dataclass, field
from typing import Optional, Sequence

from aiohttp import web
from aiohttp.test_utils import TestServer

from image_runner.core.types import MANIFEST_V2_MEDIA_TYPE, RegistryConfig

LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar.gzip"


def file_entry(name: str, content: bytes = b"", mode: int = 0o644):
    """Regular file member."""
    info = tarfile.TarInfo(name)
    info.size = len(content)
    info.mode = mode
    info.mtime = 1_700_000_000
    return info, content


def dir_entry(name: str, mode: int = 0o755):
    """Directory member."""
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = mode
    return info, None


def symlink_entry(name: str, target: str):
    """Symbolic link member."""
    info = tarfile.TarInfo(name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    return info, None


def hardlink_entry(name: str, target: str):
    """Hard link member."""
    info = tarfile.TarInfo(name)
    info.type = tarfile.LNKTYPE
    info.linkname = target
    return info, None


def build_layer(*entries) -> bytes:
    """Build a gzip tar layer from (TarInfo, content) pairs."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for info, content in entries:
            tar.addfile(info, io.BytesIO(content) if content is not None else None)
    return buffer.getvalue()


def layer_digest(data: bytes) -> str:
    """Content address of a blob."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def make_manifest(layers: Sequence[bytes]) -> dict:
    """Docker v2 schema 2 manifest listing the given layers."""
    return {
        "schemaVersion": 2,
        "mediaType": MANIFEST_V2_MEDIA_TYPE,
        "config": {
            "mediaType": "application/vnd.docker.container.image.v1+json",
            "size": 2,
            "digest": layer_digest(b"{}"),
        },
        "layers": [
            {"mediaType": LAYER_MEDIA_TYPE, "size": len(data), "digest": layer_digest(data)}
            for data in layers
        ],
    }


@dataclass
class RecordedRequest:
    kind: str
    path: str
    headers: dict = field(default_factory=dict)
    query: dict = field(default_factory=dict)


class FakeRegistry:
    """Token, manifest and blob endpoints served by aiohttp on localhost."""

    def __init__(self, layers: Sequence[bytes] = (), token: str = "test-token") -> None:
        self.token = token
        self.blobs = {layer_digest(data): data for data in layers}
        self.token_body: bytes = json.dumps({"token": token}).encode()
        self.token_status = 200
        self.manifest_body: bytes = json.dumps(make_manifest(layers)).encode()
        self.manifest_status = 200
        self.requests: list[RecordedRequest] = []
        self.server: Optional[TestServer] = None

    async def __aenter__(self) -> "FakeRegistry":
        app = web.Application()
        app.router.add_get("/token", self._token)
        app.router.add_get("/v2/{repository:.+}/manifests/{reference}", self._manifest)
        app.router.add_get("/v2/{repository:.+}/blobs/{digest}", self._blob)
        self.server = TestServer(app)
        await self.server.start_server()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.server:
            await self.server.close()

    @property
    def url(self) -> str:
        return str(self.server.make_url("/")).rstrip("/")

    def config(self, **overrides) -> RegistryConfig:
        values = {
            "registry_url": self.url,
            "auth_url": f"{self.url}/token",
            "timeout": 10,
        }
        values.update(overrides)
        return RegistryConfig(**values)

    def requests_of(self, kind: str) -> list[RecordedRequest]:
        return [request for request in self.requests if request.kind == kind]

    def _record(self, kind: str, request: web.Request) -> None:
        self.requests.append(
            RecordedRequest(
                kind=kind,
                path=request.path,
                headers=dict(request.headers),
                query=dict(request.query),
            )
        )

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.token}"

    async def _token(self, request: web.Request) -> web.Response:
        self._record("token", request)
        return web.Response(
            body=self.token_body, status=self.token_status, content_type="application/json"
        )

    async def _manifest(self, request: web.Request) -> web.Response:
        self._record("manifest", request)
        if not self._authorized(request):
            return web.Response(status=401)
        return web.Response(
            body=self.manifest_body,
            status=self.manifest_status,
            content_type=MANIFEST_V2_MEDIA_TYPE,
        )

    async def _blob(self, request: web.Request) -> web.Response:
        self._record("blob", request)
        if not self._authorized(request):
            return web.Response(status=401)
        data = self.blobs.get(request.match_info["digest"])
        if data is None:
            return web.Response(status=404)
        return web.Response(body=data, content_type="application/octet-stream")
