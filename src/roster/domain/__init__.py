from .models import (
    AuthUser,
    BatchDeleteFailure,
    BatchDeleteResult,
    ChartPoint,
    FilterSet,
    PendingId,
    RecordId,
    RosterStatistics,
    ServerId,
    StatusAverage,
    StudentRecord,
    StudentStatus,
    coerce_record_id,
    new_pending_id,
)

__all__ = [
    "AuthUser",
    "BatchDeleteFailure",
    "BatchDeleteResult",
    "ChartPoint",
    "FilterSet",
    "PendingId",
    "RecordId",
    "RosterStatistics",
    "ServerId",
    "StatusAverage",
    "StudentRecord",
    "StudentStatus",
    "coerce_record_id",
    "new_pending_id",
]
