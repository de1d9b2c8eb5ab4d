"""Reduce commit statuses, check suites and required checks to one verdict.

Statuses are read first and can only be overridden towards a worse outcome:
error beats pending beats success. Check suites are consulted unless the
statuses already reported an error. Finally, a success is held back as
pending while any required status check has not reported success yet.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

import structlog

from dependabot_helper.models.checks import ChecksStatus
from dependabot_helper.models.github import CheckRun, CheckSuite, CombinedStatus
from dependabot_helper.services.integrations.cached import CachingGithubHost

logger = structlog.get_logger(__name__)

SUITE_QUEUED = "queued"
SUITE_IN_PROGRESS = "in_progress"
SUITE_COMPLETED = "completed"

SUCCESS_CONCLUSIONS = frozenset({"neutral", "skipped", "success"})
ERROR_CONCLUSIONS = frozenset({"action_required", "cancelled", "failure", "timed_out"})
PASSING_RUN_CONCLUSIONS = frozenset({"neutral", "success"})


class SuiteOutcome(str, Enum):
    ALL_SUCCESS = "all_success"
    ANY_ERROR = "any_error"
    ANY_PENDING = "any_pending"
    UNCLASSIFIED = "unclassified"


# (status from commit statuses, outcome of check suites) -> resolved status.
_RESOLUTION: dict[tuple[Optional[ChecksStatus], SuiteOutcome], Optional[ChecksStatus]] = {
    (None, SuiteOutcome.ALL_SUCCESS): ChecksStatus.SUCCESS,
    (ChecksStatus.SUCCESS, SuiteOutcome.ALL_SUCCESS): ChecksStatus.SUCCESS,
    (ChecksStatus.PENDING, SuiteOutcome.ALL_SUCCESS): ChecksStatus.PENDING,
    (ChecksStatus.ERROR, SuiteOutcome.ALL_SUCCESS): ChecksStatus.ERROR,
    (None, SuiteOutcome.ANY_ERROR): ChecksStatus.ERROR,
    (ChecksStatus.SUCCESS, SuiteOutcome.ANY_ERROR): ChecksStatus.ERROR,
    (ChecksStatus.PENDING, SuiteOutcome.ANY_ERROR): ChecksStatus.ERROR,
    (ChecksStatus.ERROR, SuiteOutcome.ANY_ERROR): ChecksStatus.ERROR,
    (None, SuiteOutcome.ANY_PENDING): ChecksStatus.PENDING,
    (ChecksStatus.SUCCESS, SuiteOutcome.ANY_PENDING): ChecksStatus.PENDING,
    (ChecksStatus.PENDING, SuiteOutcome.ANY_PENDING): ChecksStatus.PENDING,
    (ChecksStatus.ERROR, SuiteOutcome.ANY_PENDING): ChecksStatus.ERROR,
    (None, SuiteOutcome.UNCLASSIFIED): None,
    (ChecksStatus.SUCCESS, SuiteOutcome.UNCLASSIFIED): ChecksStatus.SUCCESS,
    (ChecksStatus.PENDING, SuiteOutcome.UNCLASSIFIED): ChecksStatus.PENDING,
    (ChecksStatus.ERROR, SuiteOutcome.UNCLASSIFIED): ChecksStatus.ERROR,
}


def resolve_status(status: Optional[ChecksStatus], outcome: SuiteOutcome) -> Optional[ChecksStatus]:
    return _RESOLUTION[(status, outcome)]


def status_from_combined(combined: CombinedStatus) -> Optional[ChecksStatus]:
    if combined.total_count == 0:
        return None
    if combined.state in ("error", "failure"):
        return ChecksStatus.ERROR
    if combined.state == "success":
        return ChecksStatus.SUCCESS
    return ChecksStatus.PENDING


def _never_ran(suite: CheckSuite) -> bool:
    return suite.conclusion is None and suite.status != SUITE_IN_PROGRESS


def classify_suites(suites: Iterable[CheckSuite]) -> SuiteOutcome:
    suites = list(suites)
    if all(suite.conclusion in SUCCESS_CONCLUSIONS or _never_ran(suite) for suite in suites):
        return SuiteOutcome.ALL_SUCCESS
    if any(suite.conclusion in ERROR_CONCLUSIONS for suite in suites):
        return SuiteOutcome.ANY_ERROR
    if any(suite.conclusion is None and suite.status == SUITE_IN_PROGRESS for suite in suites):
        return SuiteOutcome.ANY_PENDING
    return SuiteOutcome.UNCLASSIFIED


def passing_run_names(runs: Iterable[CheckRun]) -> set[str]:
    return {run.name for run in runs if run.conclusion in PASSING_RUN_CONCLUSIONS}


class ChecksEvaluator:
    def __init__(self, host: CachingGithubHost) -> None:
        self._host = host

    async def required_contexts(self, owner: str, name: str, branch: str) -> list[str]:
        protection = await self._host.get_branch_protection(owner=owner, name=name, branch=branch)
        if protection is None:
            return []
        return list(protection.required_status_checks)

    async def evaluate_checks_status(
        self,
        owner: str,
        name: str,
        commit_sha: str,
        base_branch: str,
    ) -> ChecksStatus:
        required = await self.required_contexts(owner, name, base_branch)

        combined = await self._host.get_combined_status(owner=owner, name=name, sha=commit_sha)
        status = status_from_combined(combined)
        successful: set[str] = {item.context for item in combined.statuses}

        if status != ChecksStatus.ERROR:
            suites = await self._host.list_check_suites(owner=owner, name=name, sha=commit_sha)
            candidates: list[CheckSuite] = []
            runs_by_suite: dict[int, list[CheckRun]] = {}

            for suite in suites:
                if suite.status == SUITE_QUEUED:
                    # Integrations that are installed but never run leave empty queued suites behind.
                    runs = await self._host.list_check_runs(owner=owner, name=name, suite_id=suite.id)
                    if runs:
                        runs_by_suite[suite.id] = runs
                        candidates.append(suite)
                elif suite.status in (SUITE_IN_PROGRESS, SUITE_COMPLETED):
                    candidates.append(suite)

            if required:
                for suite in candidates:
                    runs = runs_by_suite.get(suite.id)
                    if runs is None:
                        runs = await self._host.list_check_runs(owner=owner, name=name, suite_id=suite.id)
                    successful |= passing_run_names(runs)

            if candidates:
                status = resolve_status(status, classify_suites(candidates))

        if status == ChecksStatus.SUCCESS and required and not set(required) <= successful:
            logger.debug(
                "Required checks have not all reported success",
                owner=owner,
                repository=name,
                sha=commit_sha,
                missing=sorted(set(required) - successful),
            )
            status = ChecksStatus.PENDING

        return status or ChecksStatus.PENDING
