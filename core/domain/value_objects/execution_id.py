"""Domain value objects - pure Python immutable types."""

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ExecutionID:
    """Unique identifier for workflow execution tracing."""

    value: UUID

    @classmethod
    def generate(cls) -> "ExecutionID":
        """Generate a new ExecutionID."""
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, raw: str) -> "ExecutionID":
        """Parse an ExecutionID from its string form."""
        return cls(value=UUID(raw))

    def __str__(self) -> str:
        """Return string representation."""
        return str(self.value)
