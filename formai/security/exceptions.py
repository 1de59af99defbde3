class VaultError(Exception):
    """Base exception for credential vault errors."""


class VaultConfigurationError(VaultError):
    """Raised when the secrets used to derive the encryption key are unusable."""
