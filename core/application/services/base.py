"""
Service unit contract.

A service is constructed from ``(user, params)`` and exposes an async
``call()`` returning a ServiceResult. Workflows only rely on this contract;
what a service does inside ``call`` is its own business.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

_UNSET: Any = object()


@dataclass
class ServiceResult:
    """
    Outcome of a service call.

    A successful result conventionally carries a ``resource`` (single
    record) or ``items`` (collection). A failed result carries a message,
    a machine readable code and optional field errors.
    """

    success: bool = True
    resource: Any = None
    items: Any = None
    message: Optional[str] = None
    code: Optional[str] = None
    errors: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    # "resource" or "items": which field was set, even when set to None
    output_key: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.output_key is None:
            if self.resource is not None:
                self.output_key = "resource"
            elif self.items is not None:
                self.output_key = "items"

    @classmethod
    def ok(
        cls,
        resource: Any = _UNSET,
        *,
        items: Any = _UNSET,
        message: Optional[str] = None,
        **meta: Any,
    ) -> "ServiceResult":
        """Build a successful result.

        Passing ``resource`` (or ``items``) marks it as the output, even
        when the value is None.
        """
        if resource is not _UNSET:
            output_key = "resource"
        elif items is not _UNSET:
            output_key = "items"
        else:
            output_key = None
        return cls(
            success=True,
            resource=None if resource is _UNSET else resource,
            items=None if items is _UNSET else items,
            message=message,
            meta=meta,
            output_key=output_key,
        )

    @classmethod
    def fail(
        cls,
        message: str,
        *,
        code: str = "execution_error",
        errors: Optional[Mapping[str, Any]] = None,
    ) -> "ServiceResult":
        """Build a failed result."""
        return cls(success=False, message=message, code=code, errors=dict(errors or {}))

    @property
    def failure(self) -> bool:
        return not self.success

    def output(self) -> Any:
        """Return the value a workflow stores for this result.

        ``resource`` wins over ``items``; with neither set, the result itself.
        """
        if self.output_key == "resource":
            return self.resource
        if self.output_key == "items":
            return self.items
        return self


class BaseService(ABC):
    """
    Base class for request-handling services.

    Usage:
        class CreateOrderService(BaseService):
            async def call(self) -> ServiceResult:
                order = await create(self.params["items"])
                return ServiceResult.ok(order)

        result = await CreateOrderService(user, {"items": [...]}).call()
    """

    def __init__(self, user: Any, params: Optional[Mapping[str, Any]] = None) -> None:
        """Initialize service.

        Args:
            user: The user the service acts for (opaque)
            params: Input parameters
        """
        self.user = user
        self.params: Dict[str, Any] = dict(params or {})

    @abstractmethod
    async def call(self) -> ServiceResult:
        """
        Run the service.

        Returns:
            ServiceResult describing success or failure
        """
        pass
