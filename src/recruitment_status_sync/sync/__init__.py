"""
Status-sync module: derivation rules and the cascade engine.
"""

from recruitment_status_sync.sync.engine import StatusSyncEngine
from recruitment_status_sync.sync.rules import (
    CANDIDATE_STATUS_PRECEDENCE,
    FALLBACK_CANDIDATE_STATUS,
    FinalRoundPolicy,
    PrecedenceRule,
    aggregate_candidate_status,
    match_candidate_rule,
    parse_result,
    status_after_feedback,
    status_after_scheduling,
)

__all__ = [
    "StatusSyncEngine",
    "PrecedenceRule",
    "FinalRoundPolicy",
    "CANDIDATE_STATUS_PRECEDENCE",
    "FALLBACK_CANDIDATE_STATUS",
    "aggregate_candidate_status",
    "match_candidate_rule",
    "parse_result",
    "status_after_feedback",
    "status_after_scheduling",
]
