"""Custom exceptions for image-runner."""


class ImageRunnerError(Exception):
    """Base exception for all image-runner errors."""

    pass


class ConfigError(ImageRunnerError):
    """Raised when a setting from the environment cannot be used."""

    pass


class InvalidReferenceError(ImageRunnerError):
    """Raised when an image reference cannot be parsed."""

    pass


class RegistryError(ImageRunnerError):
    """Base exception for all registry-related errors."""

    pass


class AuthError(RegistryError):
    """Raised when a pull token cannot be obtained."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class BlobFetchError(RegistryError):
    """Raised when a layer blob cannot be downloaded."""

    pass


class ExtractionError(ImageRunnerError):
    """Raised when a layer cannot be unpacked into the root."""

    pass


class SetupError(ImageRunnerError):
    """Raised when the isolated environment cannot be set up."""

    pass


class SpawnError(ImageRunnerError):
    """Raised when the target command cannot be started."""

    pass
