"""
People Finder

Sequences the retrieval pipeline for one free-text query:
extract filters -> build queries -> execute all queries concurrently -> merge.
"""

import asyncio
import logging
import time
from typing import List, Optional

import httpx

from ..common.config import FinderConfig
from ..common.llm_client import LLMClient
from .filter_extractor import ExtractedFilters, FilterExtractor
from .query_builder import QueryBuilder
from .result_merger import ResultMerger
from .search_executor import PersonRecord, SearchExecutor

logger = logging.getLogger("skillfinder.retriever.orchestrator")


class PeopleFinder:
    """
    Finds people by skill, department and office.

    ``search`` never raises: extraction and per-query failures degrade to
    fallback filters and empty result sets, so the worst case is an empty
    list.
    """

    def __init__(
        self,
        extractor: FilterExtractor,
        executor: SearchExecutor,
        builder: Optional[QueryBuilder] = None,
        merger: Optional[ResultMerger] = None,
    ):
        self._extractor = extractor
        self._executor = executor
        self._builder = builder or QueryBuilder()
        self._merger = merger or ResultMerger()

    async def search(self, raw_query: str) -> List[PersonRecord]:
        """
        Run the full pipeline for one query.

        Args:
            raw_query: Free-text query, e.g. "Leadership coaches in Sales"

        Returns:
            Deduplicated PersonRecords in first-occurrence order
        """
        if not raw_query or not raw_query.strip():
            return []

        t0 = time.monotonic()
        filters = await self._extract(raw_query)
        queries = self._builder.build(filters)
        logger.info(
            "Searching %d quer%s (filters from %s): %s",
            len(queries), "y" if len(queries) == 1 else "ies", filters.source, queries,
        )

        result_sets = await self._execute_all(queries)
        people = self._merger.merge(result_sets)

        logger.info(
            "Found %d people for %r in %d ms",
            len(people), raw_query, int((time.monotonic() - t0) * 1000),
        )
        return people

    async def _extract(self, raw_query: str) -> ExtractedFilters:
        try:
            return await self._extractor.extract(raw_query)
        except Exception as e:
            logger.error("Filter extraction raised unexpectedly: %s", e)
            return ExtractedFilters.passthrough(raw_query)

    async def _execute_all(self, queries: List[str]) -> List[List[PersonRecord]]:
        """Run every query concurrently; a failed branch contributes nothing."""
        outcomes = await asyncio.gather(
            *(self._executor.execute(q) for q in queries),
            return_exceptions=True,
        )
        result_sets = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Search for query=%s raised unexpectedly: %s", query, outcome)
                result_sets.append([])
            else:
                result_sets.append(outcome or [])
        return result_sets

    async def aclose(self) -> None:
        await self._executor.aclose()

    async def __aenter__(self) -> "PeopleFinder":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_people_finder(
    config: FinderConfig,
    access_token: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PeopleFinder:
    """
    Wire a PeopleFinder from configuration.

    Args:
        config: Loaded FinderConfig
        access_token: Bearer token for the search API (overrides config)
        http_client: Optional shared httpx client for the search backend
    """
    llm = LLMClient.from_config(config.llm)
    extractor = FilterExtractor(llm, max_tokens=config.llm.max_tokens)
    executor = SearchExecutor.from_config(config.search, access_token=access_token, http_client=http_client)
    return PeopleFinder(extractor, executor)
