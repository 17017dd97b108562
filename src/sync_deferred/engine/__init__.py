"""Settlement engine: DeferredValue, its policy and its combinators."""

from .combinators import join_all, race
from .deferred import DeferredValue, is_thenable
from .policy import (
    SettlementPolicy,
    configure,
    get_default_policy,
    reset_default_policy,
    set_default_policy,
)

__all__ = [
    "DeferredValue",
    "SettlementPolicy",
    "configure",
    "get_default_policy",
    "is_thenable",
    "join_all",
    "race",
    "reset_default_policy",
    "set_default_policy",
]
