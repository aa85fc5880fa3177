"""Session credential persistence for zapgate."""

from .store import CredentialStore

__all__ = ["CredentialStore"]
