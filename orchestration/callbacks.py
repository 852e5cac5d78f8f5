"""Workflow lifecycle callbacks - before_workflow, after_workflow and around_step hooks."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from stepwise_sdk.utils.awaitables import maybe_await

from .context import WorkflowContext
from .models import StepOutcome
from .step import Step

# before/after hooks: plain functions or coroutine functions
WorkflowHook = Callable[[WorkflowContext], Union[None, Awaitable[None]]]

# around hooks must await call_next() to let the step (and inner hooks) run
NextCallable = Callable[[], Awaitable[Optional[StepOutcome]]]
AroundHook = Callable[[Step, WorkflowContext, NextCallable], Awaitable[Any]]


@dataclass
class CallbackRegistry:
    """
    Ordered lifecycle hooks of a workflow.

    Usage:
        async def log_step(step, ctx, call_next):
            started = time.perf_counter()
            await call_next()
            logger.info(f"{step.name} took {time.perf_counter() - started:.3f}s")

        CallbackRegistry(
            before_workflow=[validate_cart],
            after_workflow=[clear_cart],
            around_step=[log_step],
        )
    """

    before_workflow: List[WorkflowHook] = field(default_factory=list)
    after_workflow: List[WorkflowHook] = field(default_factory=list)
    around_step: List[AroundHook] = field(default_factory=list)

    async def run_before_workflow(self, context: WorkflowContext) -> None:
        """Run before hooks in order, stopping once the context has failed."""
        for hook in self.before_workflow:
            await maybe_await(hook(context))
            if context.failure:
                break

    async def run_after_workflow(self, context: WorkflowContext) -> None:
        """Run every after hook in order."""
        for hook in self.after_workflow:
            await maybe_await(hook(context))

    async def run_around_step(
        self,
        step: Step,
        context: WorkflowContext,
        execute: Callable[[], Awaitable[StepOutcome]],
    ) -> Optional[StepOutcome]:
        """
        Run ``execute`` through the around hooks.

        The hooks are folded into one callable, first registered outermost,
        with ``execute`` innermost. Returns None when a hook never called
        ``call_next``. The step runs at most once per run: calling
        ``call_next`` again replays the first outcome or failure. A failure
        raised by the step is re-raised even if a hook swallowed it.
        """
        if not self.around_step:
            return await execute()

        outcomes: List[StepOutcome] = []
        failures: List[BaseException] = []

        async def innermost() -> StepOutcome:
            if failures:
                raise failures[0]
            if outcomes:
                return outcomes[0]
            try:
                outcome = await execute()
            except Exception as exc:
                failures.append(exc)
                raise
            outcomes.append(outcome)
            return outcome

        chain: NextCallable = innermost
        for hook in reversed(self.around_step):
            chain = _link(hook, step, context, chain)

        try:
            await chain()
        except Exception:
            if failures:
                raise failures[0]
            raise

        if failures:
            raise failures[0]
        return outcomes[0] if outcomes else None


def _link(
    hook: AroundHook, step: Step, context: WorkflowContext, call_next: NextCallable
) -> NextCallable:
    async def link() -> Optional[StepOutcome]:
        return await hook(step, context, call_next)

    return link
