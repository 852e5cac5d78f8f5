"""Workflow context - shared state of a single workflow run."""

from typing import Any, Dict, Iterator, Mapping, Optional

from .errors import UndefinedKeyError


class WorkflowContext:
    """
    Container for data shared between the steps of one workflow run.

    Holds the invoking user, the initial parameters, every step's output
    (keyed by step name) and the success/failure state. Keys can be
    overwritten but never removed; reading a key that was never set raises
    UndefinedKeyError.

    Usage:
        ctx = WorkflowContext(user, {"cart_items": [...]})
        ctx.set("order", order)
        ctx.get("order")          # -> order
        ctx.fail("Payment failed", payment="Card declined")
        ctx.failure               # -> True
        ctx.errors                # -> {"message": "Payment failed", "payment": "Card declined"}
    """

    def __init__(self, user: Any, params: Optional[Mapping[str, Any]] = None) -> None:
        self._user = user
        self._data: Dict[str, Any] = dict(params or {})
        self._errors: Dict[str, Any] = {}
        self._failed = False
        self._called = False
        self._transaction: Any = None

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    @property
    def user(self) -> Any:
        return self._user

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Use ``has`` (or ``key in ctx``) first when a key may be absent.

        Raises:
            UndefinedKeyError: If the key was never set
        """
        if key not in self._data:
            raise UndefinedKeyError(key)
        return self._data[key]

    def set(self, key: str, value: Any) -> Any:
        """Store ``value`` under ``key`` and return it."""
        self._data[key] = value
        return value

    def add(self, name: str, value: Any) -> Any:
        """Alias of ``set`` used to store step outputs."""
        return self.set(name, value)

    def has(self, key: str) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def to_dict(self) -> Dict[str, Any]:
        """Return a shallow copy of the stored data."""
        return dict(self._data)

    # ------------------------------------------------------------------
    # Success / failure
    # ------------------------------------------------------------------

    @property
    def success(self) -> bool:
        return not self._failed

    @property
    def failure(self) -> bool:
        return self._failed

    @property
    def errors(self) -> Dict[str, Any]:
        return dict(self._errors)

    def fail(
        self, message: str, details: Optional[Mapping[str, Any]] = None, **extra: Any
    ) -> None:
        """Mark the run as failed.

        Safe to call more than once: the context stays failed, the latest
        message wins and details are merged.

        Args:
            message: Human readable reason
            details: Field errors or other structured details
            **extra: More details, merged after ``details``
        """
        self._failed = True
        if details:
            self._errors.update(details)
        if extra:
            self._errors.update(extra)
        self._errors["message"] = message

    # ------------------------------------------------------------------
    # Engine bookkeeping
    # ------------------------------------------------------------------

    @property
    def called(self) -> bool:
        return self._called

    def mark_called(self) -> None:
        self._called = True

    @property
    def transaction(self) -> Any:
        """Transaction scope of the run, or None outside a transaction."""
        return self._transaction

    def bind_transaction(self, scope: Any) -> None:
        self._transaction = scope

    def __repr__(self) -> str:
        return (
            f"<WorkflowContext success={self.success} "
            f"data={self._data!r} errors={self._errors!r}>"
        )
