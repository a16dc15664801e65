"""
Keyword subscriptions and the keyword-driven sync matcher.

Components:
- Keyword / KeywordScope: Subscription records, scoped per content table
- KeywordRepository: CRUD and the active work list
- KeywordMatcher: Priority-ordered search with cross-keyword dedupe
"""

from src.keywords.matcher import KeywordMatcher, keyword_matches, order_keywords
from src.keywords.repository import KeywordRepository
from src.keywords.schemas import Keyword, KeywordScope, KeywordSourceType, KeywordSyncResult

__all__ = [
    "Keyword",
    "KeywordMatcher",
    "KeywordRepository",
    "KeywordScope",
    "KeywordSourceType",
    "KeywordSyncResult",
    "keyword_matches",
    "order_keywords",
]
