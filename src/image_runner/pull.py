"""Async functional style pull operations."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from .core.registry_client import RegistryClient
from .core.types import ImageManifest, ImageReference, RegistryConfig
from .exceptions import ExtractionError
from .tar.extractor import extract_layer_async
from .utils.digest import short_digest
from .utils.reference import parse_image_reference

logger = logging.getLogger(__name__)


async def _extract_all_layers(
    client: RegistryClient,
    image_name: str,
    token: str,
    manifest: ImageManifest,
    destination: Path,
) -> None:
    """Fetch and extract layers one at a time in manifest order.

    Args:
        client: Open registry client
        image_name: Image name without namespace
        token: Pull token
        manifest: Image manifest
        destination: Image root directory
    """
    total = len(manifest.layers)
    for index, layer in enumerate(manifest.layers, start=1):
        logger.info("Pulling layer %d/%d %s", index, total, short_digest(layer.digest))
        # The spill file is released before the next layer is requested
        async with client.fetch_layer_blob(image_name, layer, token) as blob_path:
            await extract_layer_async(blob_path, destination)


async def acquire_image(
    reference: Union[str, ImageReference],
    destination: Union[str, Path],
    config: Optional[RegistryConfig] = None,
) -> ImageManifest:
    """레지스트리에서 이미지를 받아 루트 디렉토리에 풀어 놓습니다.

    토큰 발급, 매니페스트 조회, 레이어 다운로드/추출을 순서대로 수행합니다.
    레이어는 매니페스트 순서대로 하나씩 처리되며, 나중 레이어가 같은 경로의
    이전 레이어 파일을 덮어씁니다.

    Args:
        reference: 이미지 참조 (예: "alpine", "alpine:3.18") 또는 ImageReference
        destination: 레이어를 풀어 놓을 기존 디렉토리
        config: 레지스트리 설정 (기본값: Docker Hub)

    Returns:
        ImageManifest: 적용된 레이어 목록

    Raises:
        InvalidReferenceError: 이미지 참조 형식이 잘못된 경우
        AuthError: 토큰 발급 실패 시
        ManifestError: 매니페스트 조회/파싱 실패 시
        BlobFetchError: 레이어 다운로드 실패 시
        ExtractionError: 레이어 추출 실패 시

    Examples:
        # alpine 이미지를 임시 디렉토리에 준비
        with tempfile.TemporaryDirectory() as root:
            manifest = await acquire_image("alpine:3.18", root)
            print(f"레이어 수: {len(manifest.layers)}")
    """
    if isinstance(reference, str):
        reference = parse_image_reference(reference)

    destination = Path(destination)
    if not destination.is_dir():
        raise ExtractionError(f"Image root does not exist: {destination}")

    config = config or RegistryConfig()

    async with RegistryClient(config) as client:
        logger.info("Authenticating for %s", reference)
        token = await client.authenticate(reference.name)

        manifest = await client.get_manifest(reference.name, reference.tag, token)

        await _extract_all_layers(client, reference.name, token, manifest, destination)

    logger.info(
        "Image %s ready in %s (%d layer(s))",
        reference,
        os.fspath(destination),
        len(manifest.layers),
    )
    return manifest
