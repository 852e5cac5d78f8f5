"""Conditional branches - Branch and BranchGroup (a fork of mutually exclusive arms)."""

from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Sequence, Union

from stepwise_sdk.logging import get_logger

from .context import WorkflowContext
from .errors import ConditionEvaluationError, InvalidStepError, StepExecutionError, WorkflowDefinitionError
from .models import StepOutcome
from .step import Condition, Step, evaluate_condition

logger = get_logger("orchestration.branch")

NO_BRANCH = "none"
DEFAULT_BRANCH_NAME = "otherwise"

# Runs one step and returns its outcome (None when an around hook did not
# let the step run). The engine passes one that applies hooks and bookkeeping.
StepRunner = Callable[[Step], Awaitable[Optional[StepOutcome]]]


class Branch:
    """
    One arm of a fork: a guard and the steps it protects.

    A branch without a guard is the default arm and always matches.
    Children are Steps or nested BranchGroups, run in declaration order.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        condition: Optional[Condition] = None,
        children: Sequence[Union[Step, "BranchGroup"]] = (),
    ) -> None:
        if condition is not None and not callable(condition):
            raise InvalidStepError(
                f"Branch {name}: condition must be callable", context={"branch": name}
            )
        for child in children:
            if not isinstance(child, (Step, BranchGroup)):
                raise InvalidStepError(
                    f"Branch {name}: expected Step or BranchGroup, got {type(child).__name__}",
                    context={"branch": name},
                )
        self.name = name
        self.condition = condition
        self.children: List[Union[Step, BranchGroup]] = list(children)

    @property
    def is_default(self) -> bool:
        return self.condition is None

    async def matches(self, context: WorkflowContext) -> bool:
        """True for the default arm, else the guard's result.

        A guard that raises does not match.
        """
        if self.condition is None:
            return True
        try:
            return await evaluate_condition(self.condition, context, f"branch {self.name}")
        except ConditionEvaluationError as exc:
            logger.error(f"Branch condition evaluation failed: {exc.message}")
            return False

    async def execute(
        self,
        context: WorkflowContext,
        user: Any,
        base_params: Mapping,
        *,
        run_step: Optional[StepRunner] = None,
        decisions: Optional[Dict[str, str]] = None,
    ) -> List[str]:
        """
        Run every child of this branch.

        Args:
            context: The workflow context
            user: The user the workflow runs for
            base_params: The workflow's initial params
            run_step: Step runner (defaults to calling Step.execute directly)
            decisions: Mapping receiving decisions of nested forks

        Returns:
            Names of the steps that actually ran, in order

        Raises:
            StepExecutionError: If a required step failed
        """
        executed: List[str] = []

        for child in self.children:
            if isinstance(child, BranchGroup):
                executed.extend(
                    await child.call(
                        context, user, base_params, run_step=run_step, decisions=decisions
                    )
                )
                continue

            try:
                if run_step is not None:
                    outcome = await run_step(child)
                else:
                    outcome = await child.execute(context, user, base_params)
            except StepExecutionError as exc:
                if exc.branch is None:
                    exc.branch = self.name
                    exc.context["branch"] = self.name
                raise

            if outcome is not None and outcome.success:
                executed.append(child.name)

        return executed

    def iter_steps(self) -> Iterator[Step]:
        for child in self.children:
            if isinstance(child, BranchGroup):
                yield from child.iter_steps()
            else:
                yield child

    def __repr__(self) -> str:
        return (
            f"<Branch name={self.name!r} "
            f"condition={'present' if self.condition else 'nil'} "
            f"steps={len(self.children)}>"
        )


class BranchGroup:
    """
    A fork: guarded branches evaluated in order plus an optional default.

    The first branch whose guard matches runs; if none matches the default
    runs; without a default the fork runs nothing and records ``"none"``.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        branches: Sequence[Branch] = (),
        default: Optional[Branch] = None,
    ) -> None:
        self.name = name
        self.branches: List[Branch] = []
        self.default_branch: Optional[Branch] = None
        for branch in branches:
            self.add_branch(branch)
        if default is not None:
            self.set_default(default)

    def add_branch(self, branch: Branch) -> Branch:
        if branch.is_default:
            return self.set_default(branch)
        if branch.name is None:
            branch.name = f"on_{len(self.branches) + 1}"
        self.branches.append(branch)
        return branch

    def set_default(self, branch: Branch) -> Branch:
        if self.default_branch is not None:
            raise WorkflowDefinitionError(
                "Default branch already defined", context={"branch_group": self.name}
            )
        if not branch.is_default:
            raise InvalidStepError(
                "A default branch cannot have a condition", context={"branch_group": self.name}
            )
        if branch.name is None:
            branch.name = DEFAULT_BRANCH_NAME
        self.default_branch = branch
        return branch

    @property
    def has_default(self) -> bool:
        return self.default_branch is not None

    @property
    def branch_count(self) -> int:
        return len(self.branches) + (1 if self.default_branch else 0)

    async def select_branch(self, context: WorkflowContext) -> Optional[Branch]:
        """Return the branch to run, or None when nothing matches."""
        for branch in self.branches:
            if await branch.matches(context):
                return branch
        return self.default_branch

    async def call(
        self,
        context: WorkflowContext,
        user: Any,
        base_params: Mapping,
        *,
        run_step: Optional[StepRunner] = None,
        decisions: Optional[Dict[str, str]] = None,
    ) -> List[str]:
        """
        Select and run the matching branch.

        Returns:
            Names of the steps that actually ran
        """
        selected = await self.select_branch(context)

        if decisions is not None:
            decisions[self.name] = selected.name if selected else NO_BRANCH

        if selected is None:
            logger.info(f"Fork {self.name}: no branch matched and no default defined")
            return []

        logger.info(f"Fork {self.name}: taking branch {selected.name}")
        return await selected.execute(
            context, user, base_params, run_step=run_step, decisions=decisions
        )

    def iter_branches(self) -> Iterator[Branch]:
        yield from self.branches
        if self.default_branch is not None:
            yield self.default_branch

    def iter_steps(self) -> Iterator[Step]:
        for branch in self.iter_branches():
            yield from branch.iter_steps()

    def iter_groups(self) -> Iterator["BranchGroup"]:
        """This group and every nested group, depth first."""
        yield self
        for branch in self.iter_branches():
            for child in branch.children:
                if isinstance(child, BranchGroup):
                    yield from child.iter_groups()

    def __repr__(self) -> str:
        return (
            f"<BranchGroup name={self.name!r} "
            f"branches={len(self.branches)} has_default={self.has_default}>"
        )
