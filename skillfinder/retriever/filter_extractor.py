"""
Filter Extractor

Turns a free-text people query into structured search filters:
skills, department and office. Uses the configured language model when one
is available, falls back to regex/delimiter heuristics when the model answers
with something other than JSON, and to the raw query as a single skill when
everything else yields nothing.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..common.llm_client import TextGenerator
from ..common.llm_utils import parse_llm_json
from ..common.text_utils import split_list

logger = logging.getLogger("skillfinder.retriever.filter_extractor")

SOURCE_LLM = "llm"
SOURCE_HEURISTIC = "heuristic"
SOURCE_PASSTHROUGH = "passthrough"


@dataclass
class ExtractedFilters:
    """Structured filters derived from one raw query"""
    query: str
    skills: List[str] = field(default_factory=list)
    department: Optional[str] = None
    office_number: Optional[str] = None
    source: str = SOURCE_LLM  # "llm" | "heuristic" | "passthrough"

    @classmethod
    def passthrough(cls, query: str) -> "ExtractedFilters":
        """Filters that search for the raw query as a single skill"""
        return cls(query=query, skills=[query], source=SOURCE_PASSTHROUGH)

    @property
    def is_passthrough(self) -> bool:
        return self.source == SOURCE_PASSTHROUGH

    @property
    def has_location_filters(self) -> bool:
        """True when a department or office filter is present"""
        return bool(self.department or self.office_number)


SYSTEM_PROMPT = (
    "You are a strict extractor for a people directory search. "
    "Return ONLY a JSON object with exactly these keys and no extra text: "
    '{"skills": [<skill strings>], "department": <string or null>, "officeNumber": <string or null>}. '
    "Use [] for skills and null for department or officeNumber when the prompt does not mention them. "
    'Example: {"skills": ["Strategic Thinking", "Team Building"], "department": "Sales", "officeNumber": null}'
)

USER_PROMPT = (
    "Extract the skills, department and office location mentioned in the following prompt. "
    "Return ONLY the JSON object. Prompt:\n\n{query}"
)

# Accepted keys per field, compared case-insensitively
SKILL_KEYS = ("skills", "skill")
DEPARTMENT_KEYS = ("department", "dept")
OFFICE_KEYS = ("officenumber", "office_number", "office", "location")

# Ordered: the first pattern with a usable capture wins
DEPARTMENT_PATTERNS: List[re.Pattern] = [
    re.compile(r"\bdepartment\s*:\s*(?P<value>[^\n]+)", re.IGNORECASE),
    re.compile(r"\bdept\.?\s*:\s*(?P<value>[^\n]+)", re.IGNORECASE),
    re.compile(r"\b(?P<value>[\w&'\-]+(?:[ \t]+[\w&'\-]+){0,2})[ \t]+department\b", re.IGNORECASE),
    re.compile(r"\bdepartment[ \t]+of[ \t]+(?P<value>[^\n]+)", re.IGNORECASE),
]

OFFICE_PATTERNS: List[re.Pattern] = [
    re.compile(r"\boffice\s*:\s*(?P<value>[^\n]+)", re.IGNORECASE),
    re.compile(r"\blocation\s*:\s*(?P<value>[^\n]+)", re.IGNORECASE),
    re.compile(r"\bbased[ \t]+in[ \t]+(?P<value>[^\n]+)", re.IGNORECASE),
    re.compile(r"\blocated[ \t]+in[ \t]+(?P<value>[^\n]+)", re.IGNORECASE),
    # Bare "in/at" only counts when followed by a capitalised place name
    re.compile(r"\b(?:[Ii]n|[Aa]t)[ \t]+(?:the[ \t]+)?(?P<value>[A-Z][\w\-]*(?:[ \t]+[A-Z0-9][\w\-]*)*)"),
]

# Fragments of model output that label a filter rather than name a skill
_FILTER_LABEL = re.compile(r"^(?:department|dept\.?|office(?:\s*number)?|location)\s*:", re.IGNORECASE)
_SKILLS_LABEL = re.compile(r"^skills?\s*:\s*", re.IGNORECASE)
_BULLET = re.compile(r"^(?:[-*•]|\d+[.)])\s*")
_VALUE_END = re.compile(r"[,;\n]")

_FILLER_WORDS = {
    "the", "a", "an", "in", "at", "of", "from", "for", "with", "our", "my",
    "their", "anyone", "someone", "somebody", "people", "person", "who",
    "is", "are", "works", "working",
}
_TRAILING_WORDS = {"office", "department", "dept"}
_NULL_WORDS = {"null", "none", "n/a", "na", "unknown", "-"}


def _first_value(data: Dict[str, Any], keys: Sequence[str]) -> Any:
    # Case variants of the same key may all be present; skip the empty ones
    for key in keys:
        for name, value in data.items():
            if str(name).lower() == key and value not in (None, "", [], {}):
                return value
    return None


def _clean_scalar(value: Any) -> Optional[str]:
    """Trim a department/office value; lists contribute their first entry."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        for item in value:
            cleaned = _clean_scalar(item)
            if cleaned:
                return cleaned
        return None
    if isinstance(value, dict):
        return None
    text = str(value).strip()
    if not text or text.lower() in _NULL_WORDS:
        return None
    return text


def _clean_skills(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return split_list(value)
    if isinstance(value, (list, tuple)):
        skills = []
        for item in value:
            if item is None or isinstance(item, (dict, list)):
                continue
            text = str(item).strip()
            if text:
                skills.append(text)
        return skills
    return []


def _clean_match(raw: str) -> Optional[str]:
    """Normalize a regex capture into a filter value (None if nothing is left)."""
    value = _VALUE_END.split(raw, 1)[0].strip()
    value = value.strip("\"'`").rstrip(".!?").strip()

    words = value.split()
    while words and words[0].lower() in _FILLER_WORDS:
        words.pop(0)
    while words and words[-1].lower() in _TRAILING_WORDS:
        words.pop()

    value = " ".join(words)
    if not value or value.lower() in _NULL_WORDS:
        return None
    return value


def match_first(
    patterns: Sequence[re.Pattern],
    text: str,
    exclude: Optional[str] = None,
) -> Optional[str]:
    """Return the cleaned capture of the first pattern that yields a value.

    A capture equal to ``exclude`` (case-insensitive) is skipped, so a
    department name is not read a second time as an office.
    """
    if not text:
        return None
    skip = exclude.lower() if exclude else None
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = _clean_match(match.group("value"))
            if value and value.lower() != skip:
                return value
    return None


def heuristic_skills(text: str) -> List[str]:
    """Candidate skills from free-form model text."""
    skills = []
    for fragment in split_list(text):
        fragment = _BULLET.sub("", fragment)
        if _FILTER_LABEL.match(fragment):
            continue
        fragment = _SKILLS_LABEL.sub("", fragment).strip().strip("\"'`")
        if fragment and fragment.lower() not in _NULL_WORDS:
            skills.append(fragment)
    return skills


class FilterExtractor:
    """
    Extracts search filters from a raw query.

    Never raises: configuration absence, call failures and unparseable
    responses all degrade to a filter set that can still be searched.
    """

    def __init__(
        self,
        llm_client: Optional[TextGenerator] = None,
        max_tokens: int = 256,
    ):
        """
        Initialize the extractor.

        Args:
            llm_client: Text generator used for extraction (LLMClient or
                StubLLMClient). None or an unavailable client disables it.
            max_tokens: Output cap for the extraction call
        """
        self._llm = llm_client
        self._max_tokens = max_tokens

    @property
    def is_enabled(self) -> bool:
        return self._llm is not None and self._llm.is_available

    async def extract(self, query: str) -> ExtractedFilters:
        """
        Extract filters from a raw query.

        Args:
            query: Raw user query

        Returns:
            ExtractedFilters; passthrough filters when nothing better is found
        """
        if not self.is_enabled:
            logger.warning("Extraction model not configured; searching with the raw query")
            return ExtractedFilters.passthrough(query)

        try:
            raw = await self._llm.generate(
                USER_PROMPT.format(query=query),
                system=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=0.0,
            )
        except Exception as e:
            logger.error("Filter extraction call failed: %s", e)
            return ExtractedFilters.passthrough(query)

        return self.interpret(query, raw)

    def interpret(self, query: str, raw: str) -> ExtractedFilters:
        """Turn the model's raw answer into filters."""
        raw = (raw or "").strip()
        if not raw:
            logger.info("Extraction model returned no text; searching with the raw query")
            return ExtractedFilters.passthrough(query)

        parsed = parse_llm_json(raw)
        if parsed is None:
            logger.info("Extraction response is not JSON; using heuristic parsing")
            return self._parse_heuristic(query, raw)

        filters = self._parse_json(query, parsed)
        if filters is None:
            logger.info("Extraction response held no usable filters; searching with the raw query")
            return ExtractedFilters.passthrough(query)
        return filters

    def _parse_json(self, query: str, parsed: Any) -> Optional[ExtractedFilters]:
        if isinstance(parsed, list):
            skills = _clean_skills(parsed)
            return ExtractedFilters(query=query, skills=skills) if skills else None

        skills = _clean_skills(_first_value(parsed, SKILL_KEYS))
        department = _clean_scalar(_first_value(parsed, DEPARTMENT_KEYS))
        office = _clean_scalar(_first_value(parsed, OFFICE_KEYS))

        if not skills and not department and not office:
            return None
        return ExtractedFilters(
            query=query,
            skills=skills,
            department=department,
            office_number=office,
        )

    def _parse_heuristic(self, query: str, raw: str) -> ExtractedFilters:
        skills = heuristic_skills(raw)
        department = match_first(DEPARTMENT_PATTERNS, raw) or match_first(DEPARTMENT_PATTERNS, query)
        office = (
            match_first(OFFICE_PATTERNS, raw, exclude=department)
            or match_first(OFFICE_PATTERNS, query, exclude=department)
        )

        if not skills and not department and not office:
            return ExtractedFilters.passthrough(query)
        return ExtractedFilters(
            query=query,
            skills=skills,
            department=department,
            office_number=office,
            source=SOURCE_HEURISTIC,
        )
