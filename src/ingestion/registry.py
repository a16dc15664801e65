"""
Adapter registry: DataSource name -> adapter instance.

Built once at startup. Callers resolve adapters by lookup and use
polymorphic search()/probe(); no code branches on provider names.
"""

import logging
from collections.abc import Iterator

from src.config.settings import Settings, get_settings
from src.ingestion.arxiv_adapter import ArxivAdapter
from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.bilibili_adapter import BilibiliAdapter
from src.ingestion.github_adapter import GitHubAdapter
from src.ingestion.hot_news_adapter import DailyHotAdapter, HotNewsAdapter
from src.ingestion.huggingface_adapter import HuggingFaceAdapter
from src.ingestion.mock_adapter import MockAdapter
from src.ingestion.semantic_scholar_adapter import SemanticScholarAdapter
from src.ingestion.youtube_adapter import YouTubeAdapter
from src.sync.config import SyncConfig
from src.sync.errors import DuplicateError, NotFoundError

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Name-keyed collection of source adapters."""

    def __init__(self, adapters: list[BaseAdapter] | None = None) -> None:
        self._adapters: dict[str, BaseAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: BaseAdapter, replace: bool = False) -> None:
        if not adapter.name:
            raise ValueError(f"{type(adapter).__name__} has no name")
        if adapter.name in self._adapters and not replace:
            raise DuplicateError(f"Adapter already registered: {adapter.name}")
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> BaseAdapter:
        try:
            return self._adapters[name]
        except KeyError:
            raise NotFoundError(f"No adapter registered for source: {name}") from None

    def names(self) -> list[str]:
        return sorted(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __iter__(self) -> Iterator[BaseAdapter]:
        return iter(self._adapters.values())

    def __len__(self) -> int:
        return len(self._adapters)


def build_registry(
    settings: Settings | None = None,
    config: SyncConfig | None = None,
) -> AdapterRegistry:
    """Create the registry with every built-in adapter and env-provided keys."""
    settings = settings or get_settings()
    config = config or SyncConfig()

    def timeout(name: str, slow: bool = False) -> float:
        return config.timeout_for(name, slow=slow)

    registry = AdapterRegistry(
        [
            ArxivAdapter(timeout=timeout("arxiv")),
            GitHubAdapter(api_key=settings.github_token, timeout=timeout("github")),
            HuggingFaceAdapter(
                api_key=settings.huggingface_token,
                timeout=timeout("huggingface", slow=True),
            ),
            SemanticScholarAdapter(
                api_key=settings.semantic_scholar_api_key,
                timeout=timeout("semantic_scholar"),
            ),
            YouTubeAdapter(api_key=settings.youtube_api_key, timeout=timeout("youtube")),
            BilibiliAdapter(timeout=timeout("bilibili")),
            HotNewsAdapter(timeout=timeout("hot_news")),
            DailyHotAdapter(timeout=timeout("dailyhot_api")),
            MockAdapter(timeout=timeout("mock")),
        ]
    )
    logger.info("Adapter registry built: %s", ", ".join(registry.names()))
    return registry
