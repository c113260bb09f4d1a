"""Core policy and concurrency primitives for InstaClone"""

from .policy import (
    QuotaCounts,
    QuotaDecision,
    QuotaLimits,
    QuotaOutcome,
    ReleaseSchedule,
    compute_release_time,
    evaluate_upload_quota,
)

__all__ = [
    "QuotaCounts",
    "QuotaDecision",
    "QuotaLimits",
    "QuotaOutcome",
    "ReleaseSchedule",
    "compute_release_time",
    "evaluate_upload_quota",
]
