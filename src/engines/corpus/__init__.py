"""
Corpus Engine - from @mentions to the papers a report is written from.

1. Mention parsing - ``@type:id`` tokens in user text
2. Resolution - each mention's paper set, concatenated in mention order
"""

from src.engines.corpus.mentions import Mention, parse_mentions
from src.engines.corpus.paper_source import PaperSource, SqlPaperSource
from src.engines.corpus.resolver import CorpusResolver, serialize_corpus

__all__ = [
    "Mention",
    "parse_mentions",
    "PaperSource",
    "SqlPaperSource",
    "CorpusResolver",
    "serialize_corpus",
]
