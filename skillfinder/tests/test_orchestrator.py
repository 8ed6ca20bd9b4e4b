"""
Pipeline Scenario Tests

End-to-end runs of PeopleFinder with a stub extraction model and a mocked
search backend.
"""

import asyncio
import json
import pytest
import httpx

from skillfinder.common.config import FinderConfig, LLMConfig, SearchConfig
from skillfinder.common.llm_client import StubLLMClient
from skillfinder.retriever.filter_extractor import FilterExtractor
from skillfinder.retriever.orchestrator import PeopleFinder, create_people_finder
from skillfinder.retriever.search_executor import PersonRecord, SearchExecutor


def _row(**cells):
    return {"Cells": [{"Key": k, "Value": v} for k, v in cells.items()]}


def _payload(*rows):
    return {"PrimaryQueryResult": {"RelevantResults": {"Table": {"Rows": list(rows)}}}}


JANE = _row(PreferredName="Jane Doe", WorkEmail="jane@contoso.com", Skills="Leadership", Department="Sales")
JANE_AGAIN = _row(PreferredName="Jane Doe", WorkEmail="JANE@contoso.com", Skills="Coaching", Office="Helsinki")
BOB = _row(PreferredName="Bob Lee", WorkEmail="bob@contoso.com", Skills="Coaching")


class RecordingBackend:
    """Mock search backend keyed by the querytext parameter."""

    def __init__(self, responses):
        self.responses = responses
        self.queries = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        query = request.url.params["querytext"].strip("'")
        self.queries.append(query)
        status, body = self.responses.get(query, (200, _payload()))
        if isinstance(body, dict):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)


def _finder(llm_response, backend, available=True) -> PeopleFinder:
    extractor = FilterExtractor(StubLLMClient(llm_response, available=available))
    executor = SearchExecutor(
        site_url="https://contoso.sharepoint.com",
        access_token="token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
    )
    return PeopleFinder(extractor, executor)


class TestPeopleFinder:
    @pytest.mark.asyncio
    async def test_skills_with_department_merge_across_queries(self):
        backend = RecordingBackend({
            "(Skills:Leadership AND Department:Sales)": (200, _payload(JANE)),
            "(Skills:Coaching AND Department:Sales)": (200, _payload(BOB, JANE_AGAIN)),
        })
        finder = _finder(
            json.dumps({"skills": ["Leadership", "Coaching"], "department": "Sales"}),
            backend,
        )

        people = await finder.search("leaders who coach, Sales department")

        assert sorted(backend.queries) == [
            "(Skills:Coaching AND Department:Sales)",
            "(Skills:Leadership AND Department:Sales)",
        ]
        assert [p.display_name for p in people] == ["Jane Doe", "Bob Lee"]
        assert people[0].skills == {"Leadership", "Coaching"}
        assert people[0].department == "Sales"
        assert people[0].location == "Helsinki"

    @pytest.mark.asyncio
    async def test_one_failing_query_does_not_abort_the_batch(self):
        backend = RecordingBackend({
            "(Skills:Leadership)": (500, "internal error"),
            "(Skills:Coaching)": (200, _payload(BOB)),
        })
        finder = _finder('["Leadership", "Coaching"]', backend)

        people = await finder.search("Leadership or Coaching")

        assert len(backend.queries) == 2
        assert [p.display_name for p in people] == ["Bob Lee"]

    @pytest.mark.asyncio
    async def test_unconfigured_extraction_passes_query_through(self):
        backend = RecordingBackend({})
        finder = _finder("", backend, available=False)

        people = await finder.search("anyone in Helsinki office")

        assert backend.queries == ["(Skills:anyone in Helsinki office)"]
        assert people == []

    @pytest.mark.asyncio
    async def test_extraction_failure_still_searches(self):
        backend = RecordingBackend({"(Skills:Rust)": (200, _payload(BOB))})
        finder = _finder(ConnectionError("model endpoint down"), backend)

        people = await finder.search("Rust")

        assert backend.queries == ["(Skills:Rust)"]
        assert [p.display_name for p in people] == ["Bob Lee"]

    @pytest.mark.asyncio
    async def test_blank_query_does_no_io(self):
        backend = RecordingBackend({})
        stub = StubLLMClient("[]")
        finder = PeopleFinder(
            FilterExtractor(stub),
            SearchExecutor(
                site_url="https://contoso.sharepoint.com",
                access_token="t",
                http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
            ),
        )

        assert await finder.search("   ") == []
        assert stub.calls == []
        assert backend.queries == []


class FakeExecutor:
    """Executor double that records concurrency and can raise."""

    def __init__(self, expected_calls, fail_on=None):
        self.expected_calls = expected_calls
        self.fail_on = fail_on
        self.started = 0
        self.all_started = asyncio.Event()
        self.closed = False

    async def execute(self, query):
        self.started += 1
        if self.started == self.expected_calls:
            self.all_started.set()
        # Only completes if every query was issued before any finished
        await asyncio.wait_for(self.all_started.wait(), timeout=2)
        if query == self.fail_on:
            raise RuntimeError("executor bug")
        return [PersonRecord(display_name=query)]

    async def aclose(self):
        self.closed = True


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_queries_run_concurrently(self):
        executor = FakeExecutor(expected_calls=3)
        finder = PeopleFinder(FilterExtractor(StubLLMClient('["a", "b", "c"]')), executor)

        people = await finder.search("a b c")

        assert [p.display_name for p in people] == ["(Skills:a)", "(Skills:b)", "(Skills:c)"]

    @pytest.mark.asyncio
    async def test_unexpected_executor_error_is_contained(self):
        executor = FakeExecutor(expected_calls=2, fail_on="(Skills:a)")
        finder = PeopleFinder(FilterExtractor(StubLLMClient('["a", "b"]')), executor)

        people = await finder.search("a b")

        assert [p.display_name for p in people] == ["(Skills:b)"]

    @pytest.mark.asyncio
    async def test_context_manager_closes_executor(self):
        executor = FakeExecutor(expected_calls=1)
        async with PeopleFinder(FilterExtractor(), executor):
            pass
        assert executor.closed


class TestCreatePeopleFinder:
    @pytest.mark.asyncio
    async def test_wires_components_from_config(self):
        backend = RecordingBackend({"(Skills:Go)": (200, _payload(BOB))})
        config = FinderConfig(
            llm=LLMConfig(),
            search=SearchConfig(site_url="https://contoso.sharepoint.com", access_token="cfg-token"),
        )
        client = httpx.AsyncClient(transport=httpx.MockTransport(backend))

        finder = create_people_finder(config, http_client=client)
        people = await finder.search("Go")

        assert backend.queries == ["(Skills:Go)"]
        assert [p.display_name for p in people] == ["Bob Lee"]
