"""
Emoticon Service - placeholder resolution for chat text

Modules:
- quotaLimiter:   per-client daily guest quota (in-memory and Redis stores)
- keywordDeriver: placeholder token -> ordered search keywords
- imageSearch:    emoticon source search, retry and base64 inlining
- aiFallback:     model-suggested alternative keywords
- tagReplacer:    scans text and substitutes resolved placeholders
"""

from emotichat.emoticonService.models import SearchResult, PlaceholderMatch, ReplacementOutcome
from emotichat.emoticonService.quotaLimiter import (
    QuotaDecision,
    QuotaStore,
    InMemoryQuotaStore,
    RedisQuotaStore,
)
from emotichat.emoticonService.keywordDeriver import derive_variations
from emotichat.emoticonService.imageSearch import EmoticonSearchClient
from emotichat.emoticonService.aiFallback import KeywordSuggester
from emotichat.emoticonService.tagReplacer import TagReplacer, iter_placeholders

__all__ = [
    'SearchResult',
    'PlaceholderMatch',
    'ReplacementOutcome',
    'QuotaDecision',
    'QuotaStore',
    'InMemoryQuotaStore',
    'RedisQuotaStore',
    'derive_variations',
    'EmoticonSearchClient',
    'KeywordSuggester',
    'TagReplacer',
    'iter_placeholders',
]
