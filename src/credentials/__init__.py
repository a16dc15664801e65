"""Credentials: pooled session credentials for scraping-style providers."""

from src.credentials.config import CredentialsConfig
from src.credentials.pool import CredentialPool, aggregate_health, choose_credential
from src.credentials.repository import CredentialRepository
from src.credentials.schemas import Credential, PoolHealth

__all__ = [
    "Credential",
    "CredentialPool",
    "CredentialRepository",
    "CredentialsConfig",
    "PoolHealth",
    "aggregate_health",
    "choose_credential",
]
