"""
Query Builder

Turns extracted filters into fielded search-query strings for the people
search backend, e.g. ``(Skills:Leadership AND Department:"Quality Assurance")``.
Pure functions, no I/O.
"""

import re
from typing import List, Optional

from ..common.text_utils import unique
from .filter_extractor import ExtractedFilters

# Values matching this must be phrase-quoted to stay a single term
_NEEDS_QUOTES = re.compile(r"[\s:()\"']")

# Raw query text keeps its spaces but not query syntax
_FALLBACK_NEEDS_QUOTES = re.compile(r"[:()\"]")


def escape_value(value: str) -> str:
    """Double single quotes; the whole querytext is sent as a '...' literal."""
    return value.replace("'", "''")


def format_value(value: str) -> str:
    """
    Format one filter value for the fielded query syntax.

    Single quotes are doubled. Values containing whitespace, colons,
    parentheses or quotes of either kind are wrapped in double quotes;
    embedded double quotes are dropped since the syntax has no escape for
    them.
    """
    value = escape_value(value.strip())
    if _NEEDS_QUOTES.search(value):
        return '"' + value.replace('"', "") + '"'
    return value


class QueryBuilder:
    """Builds one or more search queries from ExtractedFilters."""

    SKILL_FIELD = "Skills"
    DEPARTMENT_FIELD = "Department"
    OFFICE_FIELD = "OfficeNumber"

    def build(self, filters: ExtractedFilters) -> List[str]:
        """
        Build the search queries for a filter set.

        Returns:
            One query per unique skill (each AND-ed with the department and
            office clauses), a single combined department/office query when
            there are no skills, or a single fallback query on the raw text.
            Never empty.
        """
        skills = unique([s.strip() for s in filters.skills if s and s.strip()])
        location_clauses = self._location_clauses(filters)

        if skills and not filters.is_passthrough:
            return [
                self._combine([self._clause(self.SKILL_FIELD, skill)] + location_clauses)
                for skill in skills
            ]

        if location_clauses and not filters.is_passthrough:
            return [self._combine(location_clauses)]

        return [self.fallback(filters.query)]

    def fallback(self, raw_query: str) -> str:
        """Skill-field search on the raw query text.

        Plain text goes through unquoted; text carrying field or grouping
        syntax is phrase-quoted so it cannot alter the query structure.
        """
        value = escape_value((raw_query or "").strip())
        if _FALLBACK_NEEDS_QUOTES.search(value):
            value = '"' + value.replace('"', "") + '"'
        return f"({self.SKILL_FIELD}:{value})"

    def _location_clauses(self, filters: ExtractedFilters) -> List[str]:
        clauses = []
        department = self._clean(filters.department)
        if department:
            clauses.append(self._clause(self.DEPARTMENT_FIELD, department))
        office = self._clean(filters.office_number)
        if office:
            clauses.append(self._clause(self.OFFICE_FIELD, office))
        return clauses

    @staticmethod
    def _clean(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @staticmethod
    def _clause(field_name: str, value: str) -> str:
        return f"{field_name}:{format_value(value)}"

    @staticmethod
    def _combine(clauses: List[str]) -> str:
        return "(" + " AND ".join(clauses) + ")"


def build_queries(filters: ExtractedFilters) -> List[str]:
    """Convenience wrapper around QueryBuilder().build()."""
    return QueryBuilder().build(filters)
