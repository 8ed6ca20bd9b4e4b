"""
Search Executor

Runs one fielded query against the SharePoint people-search REST endpoint
and normalizes the result rows into PersonRecords.
Every failure resolves to an empty result list so one bad query cannot
abort a batch of concurrent searches.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

import httpx

from ..common.config import DEFAULT_SOURCE_ID, SearchConfig
from ..common.text_utils import split_list

logger = logging.getLogger("skillfinder.retriever.search_executor")

SEARCH_PATH = "/_api/search/query"


@dataclass
class PersonRecord:
    """A person returned by the people-search backend"""
    display_name: str
    work_email: Optional[str] = None
    skills: Set[str] = field(default_factory=set)
    department: Optional[str] = None
    location: Optional[str] = None

    @property
    def identity_key(self) -> str:
        """Dedup key: email (case-insensitive) when present, else the exact name"""
        if self.work_email:
            return f"email:{self.work_email.lower()}"
        return f"name:{self.display_name}"

    def copy(self) -> "PersonRecord":
        return PersonRecord(
            display_name=self.display_name,
            work_email=self.work_email,
            skills=set(self.skills),
            department=self.department,
            location=self.location,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_name": self.display_name,
            "work_email": self.work_email,
            "skills": sorted(self.skills),
            "department": self.department,
            "location": self.location,
        }


# Ordered candidate keys per logical field; first non-empty value wins
FIELD_ALIASES: Dict[str, Sequence[str]] = {
    "display_name": ("PreferredName", "Title", "AccountName"),
    "work_email": ("WorkEmail", "AccountName", "SPS-Mail"),
    "skills": ("Skills", "PeopleKeywords", "Tags", "RefinableString01"),
    "department": ("Department", "SPS-Department", "Office"),
    "location": ("Office", "SPS-Location", "Location", "OfficeNumber"),
}

DEFAULT_SELECT_PROPERTIES: List[str] = list(
    dict.fromkeys(key for aliases in FIELD_ALIASES.values() for key in aliases)
)


def _cells(row: Any) -> List[Dict[str, Any]]:
    """Cells of a row, in either the plain or the verbose OData shape."""
    if not isinstance(row, dict):
        return []
    cells = row.get("Cells")
    if isinstance(cells, dict):
        cells = cells.get("results")
    if not isinstance(cells, list):
        return []
    return [c for c in cells if isinstance(c, dict)]


def resolve_field(cells: Dict[str, Any], aliases: Sequence[str]) -> Optional[str]:
    """Value of the first alias that is present and non-empty."""
    for key in aliases:
        value = cells.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _email_from_account(value: Optional[str]) -> Optional[str]:
    # Claims-encoded account names look like "i:0#.f|membership|user@contoso.com"
    if value and "|" in value:
        value = value.rsplit("|", 1)[-1].strip()
    return value or None


def parse_row(row: Any) -> Optional[PersonRecord]:
    """Normalize one result row; None when it has no display name."""
    cells = {}
    for cell in _cells(row):
        key = cell.get("Key")
        if key is not None and key not in cells:
            cells[key] = cell.get("Value")

    name = resolve_field(cells, FIELD_ALIASES["display_name"])
    if not name:
        return None

    skills_text = resolve_field(cells, FIELD_ALIASES["skills"])
    return PersonRecord(
        display_name=name,
        work_email=_email_from_account(resolve_field(cells, FIELD_ALIASES["work_email"])),
        skills=set(split_list(skills_text or "")),
        department=resolve_field(cells, FIELD_ALIASES["department"]),
        location=resolve_field(cells, FIELD_ALIASES["location"]),
    )


def parse_search_response(payload: Any) -> List[PersonRecord]:
    """Extract PersonRecords from a search/query JSON payload."""
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected search payload type: {type(payload).__name__}")

    # Verbose OData wraps everything in "d"
    if isinstance(payload.get("d"), dict) and "PrimaryQueryResult" not in payload:
        payload = payload["d"]

    table = (
        ((payload.get("PrimaryQueryResult") or {})
         .get("RelevantResults") or {})
        .get("Table") or {}
    )
    rows = table.get("Rows") or []
    if isinstance(rows, dict):
        rows = rows.get("results") or []

    records = []
    for row in rows:
        record = parse_row(row)
        if record is not None:
            records.append(record)
    return records


class SearchExecutor:
    """
    Executes fielded people-search queries.

    Owns its httpx.AsyncClient unless one is injected; use ``aclose()`` or
    ``async with`` to release an owned client.
    """

    def __init__(
        self,
        site_url: str,
        access_token: str,
        source_id: str = DEFAULT_SOURCE_ID,
        select_properties: Optional[Sequence[str]] = None,
        timeout: float = 20.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize executor.

        Args:
            site_url: SharePoint site root, e.g. https://contoso.sharepoint.com
            access_token: Bearer token for the search API
            source_id: Result source identifier (people results)
            select_properties: Managed properties to request (default: all aliases)
            timeout: Per-request timeout in seconds
            http_client: Optional shared client (not closed by this executor)
        """
        if not site_url:
            raise ValueError("site_url is required")

        self._site_url = site_url.rstrip("/")
        self._access_token = access_token or ""
        self._source_id = source_id
        self._select_properties = list(select_properties or DEFAULT_SELECT_PROPERTIES)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_config(
        cls,
        config: SearchConfig,
        access_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "SearchExecutor":
        return cls(
            site_url=config.site_url,
            access_token=access_token or config.access_token,
            source_id=config.source_id,
            select_properties=config.select_properties or None,
            timeout=config.timeout,
            http_client=http_client,
        )

    @property
    def search_url(self) -> str:
        return self._site_url + SEARCH_PATH

    def request_params(self, query: str) -> Dict[str, str]:
        """Query parameters for one search; httpx percent-encodes them."""
        params = {
            "querytext": f"'{query}'",
            "sourceid": f"'{self._source_id}'",
        }
        if self._select_properties:
            params["selectproperties"] = "'" + ",".join(self._select_properties) + "'"
        return params

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json;odata=nometadata",
            "Authorization": f"Bearer {self._access_token}",
        }

    async def execute(self, query: str) -> List[PersonRecord]:
        """
        Run a single query.

        Returns:
            Parsed PersonRecords; an empty list on any failure
        """
        try:
            response = await self._http.get(
                self.search_url,
                params=self.request_params(query),
                headers=self._headers(),
            )
        except Exception as e:
            logger.error("Search request failed for query=%s: %s", query, e)
            return []

        if not response.is_success:
            logger.error(
                "Search request failed for query=%s: HTTP %s %s",
                query, response.status_code, response.text[:500],
            )
            return []

        try:
            records = parse_search_response(response.json())
        except Exception as e:
            logger.warning("Malformed search response for query=%s: %s", query, e)
            return []

        logger.debug("Query %s returned %d people", query, len(records))
        return records

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "SearchExecutor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
