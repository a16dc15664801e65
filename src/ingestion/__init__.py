"""Ingestion layer: source adapters, adapter registry and the fetch client."""

from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.fetch_client import FetchClient, RetryPolicy
from src.ingestion.registry import AdapterRegistry, build_registry
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult

__all__ = [
    "BaseAdapter",
    "ContentItem",
    "ContentKind",
    "ProbeResult",
    "FetchClient",
    "RetryPolicy",
    "AdapterRegistry",
    "build_registry",
]
