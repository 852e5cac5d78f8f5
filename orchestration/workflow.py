"""Workflow definitions - WorkflowDefinition and the step/branch declaration helpers."""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Set, Union

from core.settings import get_app_settings

from .branch import Branch, BranchGroup
from .callbacks import AroundHook, CallbackRegistry, WorkflowHook
from .errors import DuplicateStepError, InvalidStepError, StepNotFoundError, WorkflowDefinitionError
from .step import Condition, InputMapper, RollbackAction, ServiceFactory, Step

WorkflowItem = Union[Step, BranchGroup]


@dataclass
class WorkflowDefinition:
    """
    Definition of a workflow.

    Validated on construction: step names must be unique across the whole
    definition (forks included), fork names must be unique and every
    ``requires`` entry must name a step declared earlier.

    Usage:
        WorkflowDefinition(
            name="order_purchase",
            use_transaction=True,
            before_workflow=[validate_cart],
            steps=[
                step("create_order", CreateOrderService,
                     input_mapper=lambda ctx: {"items": ctx.get("cart_items")}),
                branch(
                    on(lambda ctx: ctx.get("create_order").total > 100,
                       step("manual_review", ReviewService)),
                    otherwise(step("auto_approve", ApproveService)),
                    name="approval",
                ),
            ],
        )
    """

    name: str
    steps: List[WorkflowItem]
    use_transaction: Optional[bool] = None
    before_workflow: List[WorkflowHook] = field(default_factory=list)
    after_workflow: List[WorkflowHook] = field(default_factory=list)
    around_step: List[AroundHook] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise WorkflowDefinitionError("Workflow name must be a non-empty string")
        self.steps = list(self.steps)
        self.callbacks = CallbackRegistry(
            before_workflow=list(self.before_workflow),
            after_workflow=list(self.after_workflow),
            around_step=list(self.around_step),
        )
        self._validate()

    @property
    def transactional(self) -> bool:
        """``use_transaction``, falling back to the configured default."""
        if self.use_transaction is None:
            return get_app_settings().workflow.default_use_transaction
        return self.use_transaction

    @property
    def step_names(self) -> List[str]:
        return [s.name for s in self.iter_steps()]

    def iter_steps(self) -> Iterator[Step]:
        """Every step in declaration order, including steps inside forks."""
        for item in self.steps:
            if isinstance(item, BranchGroup):
                yield from item.iter_steps()
            else:
                yield item

    def find_step(self, name: str) -> Step:
        for s in self.iter_steps():
            if s.name == name:
                return s
        raise StepNotFoundError(
            f"Step {name} is not defined in workflow {self.name}",
            context={"workflow": self.name, "step": name},
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        for item in self.steps:
            if not isinstance(item, (Step, BranchGroup)):
                raise InvalidStepError(
                    f"Workflow {self.name}: expected Step or BranchGroup, got {type(item).__name__}",
                    context={"workflow": self.name},
                )

        fork_names: Set[str] = set()
        fork_index = 0
        for item in self.steps:
            if not isinstance(item, BranchGroup):
                continue
            for group in item.iter_groups():
                fork_index += 1
                if group.name is None:
                    group.name = f"branch_{fork_index}"
                if group.name in fork_names:
                    raise DuplicateStepError(
                        f"Fork {group.name} is defined more than once",
                        context={"workflow": self.name, "fork": group.name},
                    )
                fork_names.add(group.name)

        seen: Set[str] = set()
        for s in self.iter_steps():
            if s.name in seen:
                raise DuplicateStepError(
                    f"Step {s.name} is defined more than once",
                    context={"workflow": self.name, "step": s.name},
                )
            seen.add(s.name)

        self._check_requires(self.steps, set())

    def _check_requires(self, items: Sequence[WorkflowItem], available: Set[str]) -> Set[str]:
        """Walk items in order; return the names available after them."""
        available = set(available)
        for item in items:
            if isinstance(item, BranchGroup):
                produced: Set[str] = set()
                for arm in item.iter_branches():
                    produced |= self._check_requires(arm.children, available)
                available |= produced
                continue
            missing = [name for name in item.requires if name not in available]
            if missing:
                raise StepNotFoundError(
                    f"Step {item.name} requires undefined step(s): {', '.join(missing)}",
                    context={"workflow": self.name, "step": item.name, "missing": missing},
                )
            available.add(item.name)
        return available


# =============================================================================
# DECLARATION HELPERS
# =============================================================================

def step(
    name: str,
    service: ServiceFactory,
    *,
    input_mapper: Optional[InputMapper] = None,
    optional: bool = False,
    condition: Optional[Condition] = None,
    rollback: Optional[RollbackAction] = None,
    requires: Sequence[str] = (),
) -> Step:
    """Declare a step."""
    return Step(
        name,
        service,
        input_mapper=input_mapper,
        optional=optional,
        condition=condition,
        rollback=rollback,
        requires=requires,
    )


def on(condition: Condition, *children: WorkflowItem, name: Optional[str] = None) -> Branch:
    """Declare a guarded branch; it runs when ``condition`` holds."""
    if condition is None or not callable(condition):
        raise InvalidStepError("on() requires a callable condition")
    if not children:
        raise InvalidStepError("on() requires at least one step")
    return Branch(name=name, condition=condition, children=children)


def otherwise(*children: WorkflowItem) -> Branch:
    """Declare the default branch of a fork."""
    if not children:
        raise InvalidStepError("otherwise() requires at least one step")
    return Branch(children=children)


def branch(*arms: Branch, name: Optional[str] = None) -> BranchGroup:
    """Declare a fork from ``on(...)`` arms and at most one ``otherwise(...)``."""
    if not arms:
        raise InvalidStepError("branch() requires at least one arm", context={"fork": name})
    group = BranchGroup(name=name)
    for arm in arms:
        if not isinstance(arm, Branch):
            raise InvalidStepError(
                f"branch() arms must come from on() or otherwise(), got {type(arm).__name__}",
                context={"fork": name},
            )
        group.add_branch(arm)
    return group
