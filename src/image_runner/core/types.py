"""Data types shared across image-runner."""

import os
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ConfigError, ManifestError
from ..utils.digest import validate_digest

DEFAULT_REGISTRY_URL = "https://registry.hub.docker.com"
DEFAULT_AUTH_URL = "https://auth.docker.io/token"
DEFAULT_SERVICE = "registry.docker.io"
DEFAULT_NAMESPACE = "library"

MANIFEST_V2_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"


@dataclass(frozen=True)
class RegistryConfig:
    """Registry endpoints and transfer settings for a single run."""

    registry_url: str = DEFAULT_REGISTRY_URL
    auth_url: str = DEFAULT_AUTH_URL
    service: str = DEFAULT_SERVICE
    namespace: str = DEFAULT_NAMESPACE
    timeout: int = 300
    chunk_size: int = 1024 * 1024

    def __post_init__(self) -> None:
        object.__setattr__(self, "registry_url", self.registry_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> "RegistryConfig":
        """Build a config from IMAGE_RUNNER_* environment variables.

        Args:
            **overrides: Explicit values that win over the environment.
                ``None`` values are ignored.

        Returns:
            RegistryConfig instance

        Raises:
            ConfigError: If IMAGE_RUNNER_TIMEOUT is not an integer
        """
        overrides = {k: v for k, v in overrides.items() if v is not None}
        values: dict[str, Any] = {
            "registry_url": os.getenv("IMAGE_RUNNER_REGISTRY_URL", DEFAULT_REGISTRY_URL),
            "auth_url": os.getenv("IMAGE_RUNNER_AUTH_URL", DEFAULT_AUTH_URL),
            "service": os.getenv("IMAGE_RUNNER_SERVICE", DEFAULT_SERVICE),
            "namespace": os.getenv("IMAGE_RUNNER_NAMESPACE", DEFAULT_NAMESPACE),
        }
        if "timeout" not in overrides:
            raw_timeout = os.getenv("IMAGE_RUNNER_TIMEOUT", "300")
            try:
                values["timeout"] = int(raw_timeout)
            except ValueError as e:
                raise ConfigError(
                    f"IMAGE_RUNNER_TIMEOUT must be a whole number of seconds, got {raw_timeout!r}"
                ) from e
        values.update(overrides)
        return cls(**values)

    def repository(self, image_name: str) -> str:
        """Full repository path for an image name (e.g. ``library/alpine``)."""
        if not self.namespace:
            return image_name
        return f"{self.namespace}/{image_name}"


@dataclass(frozen=True)
class ImageReference:
    """Image name and tag parsed from ``name[:tag]``."""

    name: str
    tag: str = "latest"

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}"


@dataclass(frozen=True)
class LayerDescriptor:
    """A single layer entry of an image manifest."""

    media_type: str
    digest: str


@dataclass(frozen=True)
class ImageManifest:
    """Ordered layer list of an image manifest."""

    layers: tuple[LayerDescriptor, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "ImageManifest":
        """Build a manifest from the registry's v2 manifest JSON.

        Only the ``layers`` list is read; other schema fields are ignored.

        Args:
            data: Decoded manifest JSON

        Returns:
            ImageManifest instance

        Raises:
            ManifestError: If the document has no usable layer list
        """
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a JSON object")

        if "layers" not in data:
            if "manifests" in data:
                raise ManifestError(
                    "Manifest lists and image indexes are not supported"
                )
            raise ManifestError("Manifest has no 'layers' field")

        raw_layers = data["layers"]
        if not isinstance(raw_layers, list):
            raise ManifestError("Manifest 'layers' must be a list")

        layers = []
        for index, entry in enumerate(raw_layers):
            if not isinstance(entry, dict):
                raise ManifestError(f"Layer {index} is not an object")

            media_type = entry.get("mediaType")
            digest = entry.get("digest")
            if not isinstance(media_type, str) or not media_type:
                raise ManifestError(f"Layer {index} has no mediaType")
            if not validate_digest(digest):
                raise ManifestError(f"Layer {index} has invalid digest: {digest!r}")

            layers.append(LayerDescriptor(media_type=media_type, digest=digest))

        return cls(layers=tuple(layers))


@dataclass(frozen=True)
class CommandSpec:
    """What to run and in which image."""

    image: ImageReference
    executable: str
    args: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of a finished command."""

    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""
