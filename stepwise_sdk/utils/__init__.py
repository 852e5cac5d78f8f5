"""Small utilities shared by the orchestration layer."""

from .awaitables import maybe_await
from .datetime import utc_now

__all__ = ["maybe_await", "utc_now"]
