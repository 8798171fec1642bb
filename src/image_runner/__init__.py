"""image-runner - run a command inside a root filesystem pulled from a registry."""

__version__ = "0.1.0"

from .core.registry_client import RegistryClient
from .core.types import (
    CommandResult,
    CommandSpec,
    ImageManifest,
    ImageReference,
    LayerDescriptor,
    RegistryConfig,
)
from .exceptions import (
    AuthError,
    BlobFetchError,
    ConfigError,
    ExtractionError,
    ImageRunnerError,
    InvalidReferenceError,
    ManifestError,
    RegistryError,
    SetupError,
    SpawnError,
)
from .executor import execute_command
from .isolation.bootstrap import BootstrapState, IsolationBootstrap, bootstrap
from .pull import acquire_image
from .run import run_container
from .tar.extractor import LayerExtractor, extract_layer
from .utils.reference import parse_image_reference

__all__ = [
    "RegistryClient",
    "RegistryConfig",
    "ImageReference",
    "ImageManifest",
    "LayerDescriptor",
    "CommandSpec",
    "CommandResult",
    "parse_image_reference",
    "acquire_image",
    "LayerExtractor",
    "extract_layer",
    "IsolationBootstrap",
    "BootstrapState",
    "bootstrap",
    "execute_command",
    "run_container",
    "ImageRunnerError",
    "ConfigError",
    "InvalidReferenceError",
    "RegistryError",
    "AuthError",
    "ManifestError",
    "BlobFetchError",
    "ExtractionError",
    "SetupError",
    "SpawnError",
]
