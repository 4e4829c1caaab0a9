"""
Status derivation rules for the recruitment pipeline.

Everything here is pure: functions take current statuses and return the
derived status without touching the database, so the policy can be
tested and audited on its own.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from recruitment_status_sync.errors import InvalidResultError
from recruitment_status_sync.schemas import (
    ApplicationStatus,
    CandidateStatus,
    InterviewResult,
)

StatusPredicate = Callable[[Sequence[ApplicationStatus]], bool]


@dataclass(frozen=True)
class PrecedenceRule:
    """One row of the candidate aggregation table."""

    name: str
    applies: StatusPredicate
    status: CandidateStatus


def _any_is(target: ApplicationStatus) -> StatusPredicate:
    return lambda statuses: target in statuses


def _all_rejected(statuses: Sequence[ApplicationStatus]) -> bool:
    return bool(statuses) and all(s == ApplicationStatus.REJECTED for s in statuses)


def _none_or_all_applied(statuses: Sequence[ApplicationStatus]) -> bool:
    return all(s == ApplicationStatus.APPLIED for s in statuses)


# Evaluated top to bottom; the first rule that applies decides.
CANDIDATE_STATUS_PRECEDENCE: tuple[PrecedenceRule, ...] = (
    PrecedenceRule("any_selected", _any_is(ApplicationStatus.SELECTED), CandidateStatus.SELECTED),
    PrecedenceRule(
        "any_interview_scheduled",
        _any_is(ApplicationStatus.INTERVIEW_SCHEDULED),
        CandidateStatus.IN_PROCESS,
    ),
    PrecedenceRule("any_shortlisted", _any_is(ApplicationStatus.SHORTLISTED), CandidateStatus.IN_PROCESS),
    PrecedenceRule("all_rejected", _all_rejected, CandidateStatus.REJECTED),
    PrecedenceRule("none_or_all_applied", _none_or_all_applied, CandidateStatus.NEW),
)

# Mixed Applied/Rejected sets fall through every rule.
FALLBACK_CANDIDATE_STATUS = CandidateStatus.NEW

# Statuses an application may leave when an interview round is scheduled.
_PRE_INTERVIEW = frozenset({ApplicationStatus.APPLIED, ApplicationStatus.SHORTLISTED})


def match_candidate_rule(
    statuses: Iterable[ApplicationStatus | str],
    rules: Sequence[PrecedenceRule] = CANDIDATE_STATUS_PRECEDENCE,
) -> PrecedenceRule | None:
    """
    Find the first precedence rule that applies to a set of application statuses.

    Args:
        statuses: Current statuses of all the candidate's applications.
        rules: Ordered rule table to evaluate.

    Returns:
        The matching rule, or None when only the fallback applies.
    """
    normalized = [ApplicationStatus(s) for s in statuses]
    for rule in rules:
        if rule.applies(normalized):
            return rule
    return None


def aggregate_candidate_status(
    statuses: Iterable[ApplicationStatus | str],
    rules: Sequence[PrecedenceRule] = CANDIDATE_STATUS_PRECEDENCE,
) -> CandidateStatus:
    """
    Derive a candidate's overall status from its applications.

    Never yields ``On Hold``; that status is only reachable by manual override.

    Args:
        statuses: Current statuses of all the candidate's applications.
        rules: Ordered rule table to evaluate.

    Returns:
        The derived candidate status.
    """
    rule = match_candidate_rule(statuses, rules)
    return rule.status if rule else FALLBACK_CANDIDATE_STATUS


def parse_result(result: InterviewResult | str) -> InterviewResult:
    """
    Coerce an interview result, rejecting anything outside the vocabulary.

    Raises:
        InvalidResultError: If the value is not Pass, Fail or On Hold.
    """
    try:
        return InterviewResult(result)
    except ValueError as error:
        raise InvalidResultError(result) from error


def status_after_scheduling(current: ApplicationStatus | str) -> ApplicationStatus:
    """Application status once a new interview round is scheduled."""
    current = ApplicationStatus(current)
    if current in _PRE_INTERVIEW:
        return ApplicationStatus.INTERVIEW_SCHEDULED
    return current


def status_after_feedback(
    current: ApplicationStatus | str,
    result: InterviewResult | str,
    is_final_round: bool,
) -> ApplicationStatus:
    """
    Application status once feedback for a round is recorded.

    Args:
        current: Application status before the feedback.
        result: Interview outcome.
        is_final_round: Whether a Pass on this round concludes the pipeline.

    Returns:
        The new application status (possibly unchanged).
    """
    current = ApplicationStatus(current)
    result = parse_result(result)

    if result == InterviewResult.FAIL:
        return ApplicationStatus.REJECTED
    if result == InterviewResult.PASS:
        return ApplicationStatus.SELECTED if is_final_round else current
    # On Hold re-affirms the interview stage without regressing.
    return status_after_scheduling(current)


@dataclass(frozen=True)
class FinalRoundPolicy:
    """
    Decides whether an interview round is the final one.

    An explicit flag always wins. Without one, the round name is matched
    case-insensitively against the configured markers.
    """

    markers: tuple[str, ...] = ("final",)

    def is_final(self, round_name: str, explicit: bool | None = None) -> bool:
        if explicit is not None:
            return explicit
        name = (round_name or "").lower()
        return any(marker.lower() in name for marker in self.markers if marker)
