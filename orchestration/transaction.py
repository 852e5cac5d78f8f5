"""Transaction boundary - protocol for the atomic scope wrapped around a workflow run."""

from typing import Any, Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class TransactionScope(Protocol):
    """
    An atomic scope.

    ``__aexit__`` must roll back when an exception escapes the block.
    Anything not committed when the scope exits is discarded.
    """

    async def __aenter__(self) -> Any:
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> Optional[bool]:
        ...

    async def commit(self) -> None:
        """Make the writes of the scope permanent."""
        ...

    async def rollback(self) -> None:
        """Discard the writes of the scope."""
        ...


TransactionFactory = Callable[[], TransactionScope]


def default_transaction_factory() -> TransactionFactory:
    """Unit of work factory bound to the configured database."""
    from core.data.uow import uow_factory
    from core.infrastructure.database.config import get_session_factory

    return uow_factory(get_session_factory())
