"""
Result Merger

Deduplicates PersonRecords across the result sets of several queries.
Identity is the work email (case-insensitive) when present, otherwise the
display name verbatim. Name matching is exact and case-sensitive, so
"jane doe" and "Jane Doe" without emails stay separate records.
"""

from typing import Dict, List, Sequence

from .search_executor import PersonRecord


def merge_into(existing: PersonRecord, incoming: PersonRecord) -> None:
    """Merge a later occurrence into the record already kept."""
    existing.skills |= incoming.skills
    if not existing.department and incoming.department:
        existing.department = incoming.department
    if not existing.location and incoming.location:
        existing.location = incoming.location


class ResultMerger:
    """Order-preserving merge of per-query result sets."""

    def merge(self, result_sets: Sequence[Sequence[PersonRecord]]) -> List[PersonRecord]:
        """
        Merge result sets into one list.

        Args:
            result_sets: Per-query results in query order

        Returns:
            One record per identity key, in first-occurrence order. Input
            records are never modified.
        """
        merged: Dict[str, PersonRecord] = {}
        for results in result_sets:
            for person in results or []:
                key = person.identity_key
                if key in merged:
                    merge_into(merged[key], person)
                else:
                    merged[key] = person.copy()
        # dicts keep insertion order
        return list(merged.values())


def merge_results(result_sets: Sequence[Sequence[PersonRecord]]) -> List[PersonRecord]:
    return ResultMerger().merge(result_sets)
