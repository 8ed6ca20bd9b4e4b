"""
Retriever - skill/attribute people search

Turns a free-text query into structured filters, runs fielded searches
against the people-search backend concurrently, and merges the results.

Key Components:
- FilterExtractor: LLM extraction with heuristic and raw-query fallbacks
- QueryBuilder: fielded query strings per skill / department / office
- SearchExecutor: concurrent-safe search calls and row normalization
- ResultMerger: identity-keyed dedup and merge
- PeopleFinder: the Extract -> Build -> Execute -> Merge pipeline
"""

from .filter_extractor import ExtractedFilters, FilterExtractor
from .query_builder import QueryBuilder, build_queries
from .search_executor import PersonRecord, SearchExecutor
from .result_merger import ResultMerger, merge_results
from .orchestrator import PeopleFinder, create_people_finder

__all__ = [
    "ExtractedFilters",
    "FilterExtractor",
    "QueryBuilder",
    "build_queries",
    "PersonRecord",
    "SearchExecutor",
    "ResultMerger",
    "merge_results",
    "PeopleFinder",
    "create_people_finder",
]
