"""Core data model: canonical records, outcomes and identity handling."""

from gamecollector.core.identity import (
    CASE_INSENSITIVE,
    ORDINAL,
    IdentityComparer,
    IdentityMap,
)
from gamecollector.core.records import (
    ErrorMessage,
    GameRecord,
    Identity,
    Outcome,
    Problem,
    is_error,
    split_outcomes,
)

__all__ = [
    "CASE_INSENSITIVE",
    "ORDINAL",
    "ErrorMessage",
    "GameRecord",
    "Identity",
    "IdentityComparer",
    "IdentityMap",
    "Outcome",
    "Problem",
    "is_error",
    "split_outcomes",
]
