"""Workflow entry point - subclass Workflow and declare a definition."""

from typing import Any, ClassVar, Mapping, Optional

from core.application.services.execution_service import ExecutionService

from .bus import EventBusProtocol
from .context import WorkflowContext
from .errors import WorkflowDefinitionError
from .models import WorkflowResult
from .orchestrator import Orchestrator
from .transaction import TransactionFactory
from .workflow import WorkflowDefinition


class Workflow:
    """
    Base class of user workflows.

    Usage:
        class OrderPurchaseWorkflow(Workflow):
            definition = WorkflowDefinition(
                name="order_purchase",
                steps=[
                    step("create_order", CreateOrderService),
                    step("charge_payment", ChargePaymentService,
                         rollback=lambda ctx: refund(ctx.get("charge_payment"))),
                ],
            )

        result = await OrderPurchaseWorkflow(user, {"cart_items": items}).call()
        if not result.success:
            print(result.failed_step, result.message)

    A Workflow instance runs once; a second ``call()`` raises
    WorkflowStateError.
    """

    definition: ClassVar[WorkflowDefinition]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        definition = cls.__dict__.get("definition")
        if definition is not None and not isinstance(definition, WorkflowDefinition):
            raise WorkflowDefinitionError(
                f"{cls.__name__}.definition must be a WorkflowDefinition",
                context={"workflow": cls.__name__},
            )

    def __init__(
        self,
        user: Any,
        params: Optional[Mapping[str, Any]] = None,
        *,
        transaction_factory: Optional[TransactionFactory] = None,
        event_bus: Optional[EventBusProtocol] = None,
        execution_service: Optional[ExecutionService] = None,
    ) -> None:
        definition = getattr(type(self), "definition", None)
        if definition is None:
            raise WorkflowDefinitionError(
                f"{type(self).__name__} has no definition",
                context={"workflow": type(self).__name__},
            )
        self.user = user
        self.params = dict(params or {})
        self._context = WorkflowContext(user, self.params)
        self._result: Optional[WorkflowResult] = None
        self._orchestrator = Orchestrator(
            definition,
            transaction_factory=transaction_factory,
            event_bus=event_bus,
            execution_service=execution_service,
        )

    @property
    def context(self) -> WorkflowContext:
        return self._context

    @property
    def result(self) -> Optional[WorkflowResult]:
        """Result of ``call()``, or None before it ran."""
        return self._result

    async def call(self) -> WorkflowResult:
        """
        Run the workflow.

        Returns:
            WorkflowSuccess or WorkflowFailure

        Raises:
            WorkflowStateError: If this instance was already called
        """
        self._result = await self._orchestrator.run(self.user, self.params, self._context)
        return self._result
