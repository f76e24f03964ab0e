"""Client for the remote student record endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from roster.api.http import ApiClient
from roster.config import PAGE_SIZE
from roster.domain.models import (
    BatchDeleteResult,
    FilterSet,
    RosterStatistics,
    StudentRecord,
    fields_to_payload,
)
from roster.errors import ValidationError
from roster.state.pagination import PageDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListResult:
    records: Tuple[StudentRecord, ...]
    pagination: PageDescriptor
    message: str = ""


class RecordService(ApiClient):
    """Blocking calls for list, read, create, update, delete and statistics.

    Each method runs one HTTP round trip and is meant to be executed on a
    worker thread; none of them touch client state.
    """

    def list_students(
        self,
        filters: FilterSet,
        page: int = 1,
        limit: int = PAGE_SIZE,
    ) -> ListResult:
        params: Dict[str, Any] = {"page": page, "limit": limit, **filters.to_params()}
        payload = self._send("GET", "list", params=params, fallback_message="Could not load students")
        records: List[StudentRecord] = []
        for row in payload.get("estudiantes") or []:
            try:
                records.append(StudentRecord.from_payload(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed student row %r: %s", row, exc)
        pagination = PageDescriptor.from_payload(
            payload.get("pagination") or {},
            requested_page=page,
            requested_limit=limit,
        )
        return ListResult(
            records=tuple(records),
            pagination=pagination,
            message=str(payload.get("message") or ""),
        )

    def read_one(self, record_id: int) -> StudentRecord:
        payload = self._send(
            "GET",
            "read_one",
            params={"id": record_id},
            fallback_message="Student not found",
        )
        payload.setdefault("id", record_id)
        return StudentRecord.from_payload(payload)

    def create(self, fields: Mapping[str, Any]) -> str:
        payload = self._send(
            "POST",
            "create",
            json=fields_to_payload(fields),
            fallback_message="Could not create student",
        )
        return str(payload.get("message") or "Student created")

    def update(self, record_id: int, fields: Mapping[str, Any]) -> str:
        body = {"id": record_id, **fields_to_payload(fields)}
        payload = self._send("PUT", "update", json=body, fallback_message="Could not update student")
        return str(payload.get("message") or "Student updated")

    def delete(self, record_id: int) -> str:
        payload = self._send(
            "DELETE",
            "delete",
            json={"id": record_id},
            fallback_message="Could not delete student",
        )
        return str(payload.get("message") or "Student deleted")

    def batch_delete(self, record_ids: Iterable[int]) -> BatchDeleteResult:
        ids = [int(value) for value in record_ids]
        if not ids:
            raise ValidationError("No students selected")
        payload = self._send(
            "DELETE",
            "batch_delete",
            json={"ids": ids},
            fallback_message="Could not delete students",
        )
        return BatchDeleteResult.from_payload(payload)

    def statistics(self) -> RosterStatistics:
        payload = self._send("GET", "statistics", fallback_message="Could not load statistics")
        return RosterStatistics.from_payload(payload)
