"""DeferredValue: a settle-once container with synchronous settlement.

A container starts pending and is settled exactly once, to a value or to a
rejection reason. Observers attached while it is pending run synchronously,
in registration order, at the moment of settlement. Nothing is deferred to a
later turn except the unhandled-rejection check.

Settled-before-setup-returned containers are flagged ``settled_synchronously``.
Under the default policy they cannot be observed with ``then``/``catch``: the
caller already has the outcome and must not be handed back an asynchronous
interface for it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from sync_deferred.core.enums import SettlementState, UnhandledRejectionMode
from sync_deferred.core.errors import (
    CallbackTypeError,
    InvalidObservationError,
    PendingResultError,
    UnhandledRejectionError,
    UsageError,
)
from sync_deferred.core.ids import new_id
from sync_deferred.observability.logger import get_logger

from .policy import SettlementPolicy, get_default_policy

logger = logging.getLogger(__name__)
diag_logger = get_logger(__name__)

Callback = Callable[[Any], Any]
Setup = Callable[[Callable[[Any], None], Callable[[Any], None]], Any]

# Raised straight through setup and handler boundaries instead of becoming
# rejection reasons.
_ESCAPING = (UsageError, UnhandledRejectionError)


def is_thenable(obj: Any) -> bool:
    """True if ``obj`` exposes a callable ``then``."""
    return callable(getattr(obj, "then", None))


def observe(thenable: Any, on_success: Callback, on_failure: Callback) -> None:
    """Attach to a thenable's outcome on behalf of the engine.

    Own containers are subscribed to directly, which also works on
    synchronously settled ones: flattening and combinators are not user
    observation. Anything else goes through its ``then``.
    """
    if isinstance(thenable, DeferredValue):
        thenable._subscribe(on_success, on_failure)
    else:
        thenable.then(on_success, on_failure)


class DeferredValue:
    """Settle-once container for a value that may not exist yet.

    ``setup(resolve, reject)`` runs synchronously inside the constructor.
    Calling either entry point more than once is allowed; only the first
    call that reaches a terminal state has any effect. An exception raised
    by ``setup`` rejects the container.
    """

    def __init__(
        self,
        setup: Setup,
        *,
        policy: SettlementPolicy | None = None,
    ) -> None:
        if not callable(setup):
            raise CallbackTypeError(
                f"DeferredValue setup must be callable, got {type(setup).__name__}"
            )
        self._policy = policy if policy is not None else get_default_policy()
        self._deferred_id = new_id()
        self._state = SettlementState.PENDING
        self._result: Any = None
        # Only appended to while pending; released at settlement.
        self._on_fulfilled: list[Callback] = []
        self._on_rejected: list[Callback] = []
        self._settled_synchronously = False
        self._handled = False

        self._constructing = True
        try:
            setup(self._resolve, self._reject)
        except _ESCAPING:
            raise
        except Exception as exc:
            logger.debug(
                "Setup raised, rejecting deferred=%s: %r",
                self._deferred_id,
                exc,
            )
            self._reject(exc)
        finally:
            self._constructing = False

    # ------------------------------------------------------------------
    # Transition
    # ------------------------------------------------------------------

    def _resolve(self, value: Any) -> None:
        if self._state is not SettlementState.PENDING:
            return
        if value is self:
            self._reject(TypeError("A deferred value cannot resolve to itself"))
        elif is_thenable(value):
            self._adopt(value, self._resolve, self._reject)
        else:
            self._transition(value, SettlementState.FULFILLED)

    def _reject(self, reason: Any) -> None:
        if self._state is not SettlementState.PENDING:
            return
        if reason is not self and is_thenable(reason):
            # Either outcome of the nested value becomes our rejection.
            self._adopt(reason, self._reject, self._reject)
        else:
            self._transition(reason, SettlementState.REJECTED)

    def _adopt(
        self,
        thenable: Any,
        on_success: Callback,
        on_failure: Callback,
    ) -> None:
        """Settle from a nested thenable once it settles."""
        try:
            observe(thenable, on_success, on_failure)
        except _ESCAPING:
            raise
        except Exception as exc:
            logger.debug(
                "Foreign thenable raised, rejecting deferred=%s: %r",
                self._deferred_id,
                exc,
            )
            self._reject(exc)

    def _transition(self, value: Any, state: SettlementState) -> None:
        self._settled_synchronously = self._constructing
        self._result = value
        self._state = state
        if state is SettlementState.FULFILLED:
            observers = self._on_fulfilled
        else:
            observers = self._on_rejected
        self._on_fulfilled = []
        self._on_rejected = []

        logger.debug(
            "deferred=%s settled %s (sync=%s, observers=%d)",
            self._deferred_id,
            state.value,
            self._settled_synchronously,
            len(observers),
        )

        if state is SettlementState.REJECTED and not observers:
            self._schedule_unhandled_check()

        # Every observer runs even if an earlier one raises; the first
        # error is re-raised once all of them have had their turn.
        first_error: BaseException | None = None
        for observer in observers:
            try:
                observer(value)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    # ------------------------------------------------------------------
    # Unhandled rejections
    # ------------------------------------------------------------------

    def _schedule_unhandled_check(self) -> None:
        if self._handled:
            return
        if self._policy.unhandled_rejection is UnhandledRejectionMode.IGNORE:
            return
        self._policy.scheduler.call_soon(self._report_if_unhandled)

    def _report_if_unhandled(self) -> None:
        if self._handled:
            return
        policy = self._policy
        if policy.on_unhandled is not None:
            policy.on_unhandled(self._deferred_id, self._result)
        if policy.unhandled_rejection is UnhandledRejectionMode.RAISE:
            raise UnhandledRejectionError(self._result, self._deferred_id)
        diag_logger.bind(
            deferred_id=self._deferred_id,
            settled_synchronously=self._settled_synchronously,
        ).warning("potentially_unhandled_rejection", reason=self._result)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def _subscribe(self, on_fulfilled: Callback, on_rejected: Callback) -> None:
        """Attach raw observers, running one now if already settled."""
        self._handled = True
        if self._state is SettlementState.FULFILLED:
            on_fulfilled(self._result)
        elif self._state is SettlementState.REJECTED:
            on_rejected(self._result)
        else:
            self._on_fulfilled.append(on_fulfilled)
            self._on_rejected.append(on_rejected)

    def _check_observable(self, method: str) -> None:
        if self._settled_synchronously and self._policy.forbid_sync_observation:
            raise InvalidObservationError(
                f"Cannot call `{method}` on synchronously resolved deferred value"
            )

    def _chain(
        self,
        on_fulfilled: Callback | None,
        on_rejected: Callback | None,
    ) -> DeferredValue:
        def setup(resolve: Callback, reject: Callback) -> None:
            def run(handler: Callback, arg: Any) -> None:
                try:
                    outcome = handler(arg)
                except _ESCAPING:
                    raise
                except Exception as exc:
                    logger.debug("Handler raised, rejecting child: %r", exc)
                    reject(exc)
                    return
                resolve(outcome)

            def fulfilled(value: Any) -> None:
                if on_fulfilled is None:
                    resolve(value)
                else:
                    run(on_fulfilled, value)

            def rejected(reason: Any) -> None:
                if on_rejected is None:
                    reject(reason)
                else:
                    run(on_rejected, reason)

            self._subscribe(fulfilled, rejected)

        return type(self)(setup, policy=self._policy)

    def then(
        self,
        on_fulfilled: Callback | None = None,
        on_rejected: Callback | None = None,
    ) -> DeferredValue:
        """Return a new container settled by applying a handler to our outcome.

        ``on_fulfilled=None`` passes the value through. ``on_rejected=None``
        forwards the rejection to the returned container, which then becomes
        responsible for it.
        """
        self._check_observable("then")
        for handler in (on_fulfilled, on_rejected):
            if handler is not None and not callable(handler):
                raise CallbackTypeError(
                    f"`then` handlers must be callable or None, "
                    f"got {type(handler).__name__}"
                )
        return self._chain(on_fulfilled, on_rejected)

    def catch(self, on_rejected: Callback) -> DeferredValue:
        """Return a new container that recovers from our rejection."""
        self._check_observable("catch")
        if not callable(on_rejected):
            raise CallbackTypeError(
                f"`catch` handler must be callable, got {type(on_rejected).__name__}"
            )
        return self._chain(None, on_rejected)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def resolve(
        cls, value: Any, *, policy: SettlementPolicy | None = None
    ) -> Any:
        """Wrap ``value`` in a fulfilled container; thenables pass through."""
        if is_thenable(value):
            return value
        return cls(lambda resolve, _reject: resolve(value), policy=policy)

    @classmethod
    def reject(
        cls, reason: Any, *, policy: SettlementPolicy | None = None
    ) -> Any:
        """Wrap ``reason`` in a rejected container; thenables pass through."""
        if is_thenable(reason):
            return reason
        return cls(lambda _resolve, reject: reject(reason), policy=policy)

    @classmethod
    def all(
        cls, items: Iterable[Any], *, policy: SettlementPolicy | None = None
    ) -> DeferredValue:
        """See :func:`sync_deferred.engine.combinators.join_all`."""
        from .combinators import join_all

        return join_all(items, policy=policy, factory=cls)

    @classmethod
    def race(
        cls, items: Iterable[Any], *, policy: SettlementPolicy | None = None
    ) -> DeferredValue:
        """See :func:`sync_deferred.engine.combinators.race`."""
        from .combinators import race

        return race(items, policy=policy, factory=cls)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def deferred_id(self) -> str:
        return self._deferred_id

    @property
    def policy(self) -> SettlementPolicy:
        return self._policy

    @property
    def state(self) -> SettlementState:
        return self._state

    @property
    def result(self) -> Any:
        """The value or rejection reason. Raises while pending."""
        if self._state is SettlementState.PENDING:
            raise PendingResultError(
                f"deferred={self._deferred_id} has not settled yet"
            )
        return self._result

    @property
    def settled_synchronously(self) -> bool:
        return self._settled_synchronously

    @property
    def handled(self) -> bool:
        return self._handled

    @property
    def is_pending(self) -> bool:
        return self._state is SettlementState.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self._state is SettlementState.FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self._state is SettlementState.REJECTED

    def __repr__(self) -> str:
        if self._state is SettlementState.PENDING:
            return f"<DeferredValue {self._deferred_id} pending>"
        return (
            f"<DeferredValue {self._deferred_id} {self._state.value}: "
            f"{self._result!r}>"
        )
