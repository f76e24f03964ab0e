"""Domain models for the student roster.

Payload keys follow the remote API (``nombre``, ``carrera``); attribute names
are the client's own (``name``, ``program``).  Conversion happens only in the
``from_payload``/``to_payload`` helpers so the rest of the client never sees
wire names.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from roster.errors import ValidationError

logger = logging.getLogger(__name__)


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"

    @classmethod
    def parse(cls, value: Any) -> "StudentStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown student status %r, treating as active", value)
            return cls.ACTIVE


# ---------------------------------------------------------------------------
# Record identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PendingId:
    """Identifier of a record created locally and not yet confirmed."""

    token: int

    def __str__(self) -> str:
        return f"pending:{self.token}"


@dataclass(frozen=True)
class ServerId:
    """Identifier assigned by the remote service."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


RecordId = Union[PendingId, ServerId]

_last_pending_token = 0


def new_pending_id() -> PendingId:
    """Return a fresh temporary identifier based on the wall clock.

    Tokens are millisecond timestamps, bumped when two records are created
    within the same millisecond so that no two pending ids collide.
    """
    global _last_pending_token
    token = max(int(time.time() * 1000), _last_pending_token + 1)
    _last_pending_token = token
    return PendingId(token)


def coerce_record_id(value: Union[RecordId, int, str]) -> RecordId:
    """Normalise raw ids coming from the view or the CLI."""
    if isinstance(value, (PendingId, ServerId)):
        return value
    return ServerId(int(value))


def parse_grade(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning("Ignoring non-numeric grade %r", value)
        return None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Ignoring unparseable timestamp %r", value)
        return None


# ---------------------------------------------------------------------------
# Student record
# ---------------------------------------------------------------------------

# Attribute name -> payload key for the fields a client may edit.
EDITABLE_FIELDS: Dict[str, str] = {
    "name": "nombre",
    "email": "email",
    "program": "carrera",
    "grade": "grade",
    "status": "status",
}


@dataclass(frozen=True)
class StudentRecord:
    """One student row as last known by the client."""

    id: RecordId
    name: str
    email: str
    program: str
    grade: Optional[Decimal] = None
    status: StudentStatus = StudentStatus.ACTIVE
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return isinstance(self.id, PendingId)

    @property
    def server_id(self) -> Optional[int]:
        if isinstance(self.id, ServerId):
            return self.id.value
        return None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StudentRecord":
        user_id = payload.get("user_id")
        return cls(
            id=ServerId(int(payload["id"])),
            name=str(payload.get("nombre") or ""),
            email=str(payload.get("email") or ""),
            program=str(payload.get("carrera") or ""),
            grade=parse_grade(payload.get("grade")),
            status=StudentStatus.parse(payload.get("status") or StudentStatus.ACTIVE.value),
            user_id=int(user_id) if user_id not in (None, "") else None,
            created_at=_parse_timestamp(payload.get("created_at")),
        )

    @classmethod
    def pending(cls, fields: Mapping[str, Any]) -> "StudentRecord":
        """Build the optimistic placeholder shown while a create is in flight."""
        return cls(
            id=new_pending_id(),
            name=str(fields.get("name") or ""),
            email=str(fields.get("email") or ""),
            program=str(fields.get("program") or ""),
            grade=parse_grade(fields.get("grade")),
            status=StudentStatus.parse(fields.get("status") or StudentStatus.ACTIVE.value),
            created_at=datetime.now(),
        )

    def with_changes(self, changes: Mapping[str, Any]) -> "StudentRecord":
        """Return a copy with *changes* merged in; unknown keys are ignored."""
        updates: Dict[str, Any] = {}
        for key, value in changes.items():
            if key not in EDITABLE_FIELDS:
                continue
            if key == "grade":
                value = parse_grade(value)
            elif key == "status":
                value = StudentStatus.parse(value)
            updates[key] = value
        return replace(self, **updates) if updates else self


def fields_to_payload(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate client-side field names into the API's request body keys."""
    payload: Dict[str, Any] = {}
    for key, value in fields.items():
        wire_key = EDITABLE_FIELDS.get(key)
        if wire_key is None:
            continue
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, StudentStatus):
            value = value.value
        payload[wire_key] = value
    return payload


def validate_student_fields(fields: Mapping[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    """Return the cleaned editable fields or raise ``ValidationError``.

    ``partial`` allows omitted keys (update); create requires name, email
    and program.
    """
    cleaned: Dict[str, Any] = {}
    for key in EDITABLE_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if isinstance(value, str):
            value = value.strip()
        cleaned[key] = value

    required = ("name", "email", "program")
    missing = [key for key in required if not cleaned.get(key) and (not partial or key in cleaned)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    grade = cleaned.get("grade")
    if grade not in (None, ""):
        try:
            cleaned["grade"] = Decimal(str(grade))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Grade must be numeric, got {grade!r}") from exc
    else:
        cleaned.pop("grade", None)

    status = cleaned.get("status")
    if status not in (None, ""):
        try:
            cleaned["status"] = StudentStatus(str(status).lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown status {status!r}") from exc
    else:
        cleaned.pop("status", None)

    if partial and not cleaned:
        raise ValidationError("Nothing to update")
    return cleaned


# ---------------------------------------------------------------------------
# Query inputs and results
# ---------------------------------------------------------------------------

FILTER_NAMES: Tuple[str, ...] = ("search", "status", "program", "grade_min", "grade_max")


@dataclass(frozen=True)
class FilterSet:
    """Active list constraints; ``None`` means "no constraint"."""

    search: Optional[str] = None
    status: Optional[StudentStatus] = None
    program: Optional[str] = None
    grade_min: Optional[Decimal] = None
    grade_max: Optional[Decimal] = None

    def with_filter(self, name: str, value: Any) -> "FilterSet":
        if name not in FILTER_NAMES:
            raise KeyError(f"Unknown filter: {name}")
        if isinstance(value, str):
            value = value.strip() or None
        if value is not None:
            if name == "status":
                try:
                    value = StudentStatus(str(value).lower())
                except ValueError as exc:
                    raise ValidationError(f"Unknown status {value!r}") from exc
            elif name in ("grade_min", "grade_max"):
                value = parse_grade(value)
        return replace(self, **{name: value})

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in FILTER_NAMES)

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.search:
            params["search"] = self.search
        if self.status is not None:
            params["status"] = self.status.value
        if self.program:
            params["carrera"] = self.program
        if self.grade_min is not None:
            params["grade_min"] = str(self.grade_min)
        if self.grade_max is not None:
            params["grade_max"] = str(self.grade_max)
        return params


@dataclass(frozen=True)
class BatchDeleteFailure:
    id: int
    error: str


@dataclass(frozen=True)
class BatchDeleteResult:
    deleted: int
    deleted_ids: Tuple[int, ...] = ()
    errors: Tuple[BatchDeleteFailure, ...] = ()
    message: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BatchDeleteResult":
        errors = tuple(
            BatchDeleteFailure(id=int(entry.get("id")), error=str(entry.get("error", "")))
            for entry in payload.get("errors") or []
            if isinstance(entry, Mapping) and entry.get("id") is not None
        )
        return cls(
            deleted=int(payload.get("deleted") or 0),
            deleted_ids=tuple(int(value) for value in payload.get("deleted_ids") or []),
            errors=errors,
            message=str(payload.get("message") or ""),
        )


@dataclass(frozen=True)
class StatusAverage:
    status: str
    avg_grade: float
    count: int


STATUS_LABELS: Dict[str, str] = {
    "active": "Active",
    "inactive": "Inactive",
    "graduated": "Graduated",
}
STATUS_COLORS: Dict[str, str] = {
    "active": "#10b981",
    "inactive": "#f59e0b",
    "graduated": "#3b82f6",
}
DEFAULT_STATUS_COLOR = "#667eea"


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float
    color: str


@dataclass(frozen=True)
class RosterStatistics:
    total_students: int = 0
    average_grade: float = 0.0
    active_students: int = 0
    inactive_students: int = 0
    graduated_students: int = 0
    averages_by_status: Tuple[StatusAverage, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RosterStatistics":
        stats = payload.get("statistics") or {}
        averages = []
        for entry in payload.get("averages_by_status") or []:
            try:
                averages.append(
                    StatusAverage(
                        status=str(entry.get("status")),
                        avg_grade=float(entry.get("avg_grade") or 0),
                        count=int(entry.get("count") or 0),
                    )
                )
            except (TypeError, ValueError):
                logger.warning("Skipping malformed status average %r", entry)
        return cls(
            total_students=int(stats.get("total_students") or 0),
            average_grade=float(stats.get("average_grade") or 0),
            active_students=int(stats.get("active_students") or 0),
            inactive_students=int(stats.get("inactive_students") or 0),
            graduated_students=int(stats.get("graduated_students") or 0),
            averages_by_status=tuple(averages),
        )

    def grade_series(self) -> List[ChartPoint]:
        """Average grade per status, ready for a bar chart."""
        return [
            ChartPoint(
                label=STATUS_LABELS.get(avg.status, avg.status),
                value=avg.avg_grade,
                color=STATUS_COLORS.get(avg.status, DEFAULT_STATUS_COLOR),
            )
            for avg in self.averages_by_status
        ]

    def distribution_series(self) -> List[ChartPoint]:
        """Student count per status, ready for a donut chart."""
        return [
            ChartPoint(
                label=STATUS_LABELS.get(avg.status, avg.status),
                value=float(avg.count),
                color=STATUS_COLORS.get(avg.status, DEFAULT_STATUS_COLOR),
            )
            for avg in self.averages_by_status
        ]


@dataclass(frozen=True)
class AuthUser:
    id: Optional[int]
    username: str
    role: str
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AuthUser":
        raw_id = payload.get("id")
        known = {"id", "username", "role"}
        return cls(
            id=int(raw_id) if raw_id not in (None, "") else None,
            username=str(payload.get("username") or ""),
            role=str(payload.get("role") or ""),
            extra={k: v for k, v in payload.items() if k not in known},
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "role": self.role, **self.extra}
