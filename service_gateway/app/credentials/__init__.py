from .resolver import CredentialResolver, CredentialSet

__all__ = ["CredentialResolver", "CredentialSet"]
