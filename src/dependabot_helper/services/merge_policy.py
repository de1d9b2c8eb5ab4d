from __future__ import annotations

from typing import Iterable, Optional

from dependabot_helper.models.github import Repository
from dependabot_helper.models.pull_request import MergeMethod
from dependabot_helper.services.integrations.base import MergeMethodError

FALLBACK_ORDER = (MergeMethod.MERGE, MergeMethod.REBASE, MergeMethod.SQUASH)


def merge_preference_order(
    preferred: Optional[MergeMethod],
    configured: Iterable[MergeMethod],
) -> list[MergeMethod]:
    """Caller choice first, then configured order, then every method once."""
    ordered: list[MergeMethod] = []
    for method in [preferred, *configured, *FALLBACK_ORDER]:
        if method is not None and method not in ordered:
            ordered.append(method)
    return ordered


def allowed_merge_methods(repository: Repository) -> list[MergeMethod]:
    allowed = {
        MergeMethod.MERGE: repository.allow_merge_commit,
        MergeMethod.REBASE: repository.allow_rebase_merge,
        MergeMethod.SQUASH: repository.allow_squash_merge,
    }
    return [method for method in FALLBACK_ORDER if allowed[method]]


def select_merge_method(
    repository: Repository,
    preferred: Optional[MergeMethod],
    configured: Iterable[MergeMethod],
) -> MergeMethod:
    candidates = merge_preference_order(preferred, configured)
    allowed = set(allowed_merge_methods(repository))
    for method in candidates:
        if method in allowed:
            return method
    raise MergeMethodError(owner=repository.owner, name=repository.name, candidates=candidates)
