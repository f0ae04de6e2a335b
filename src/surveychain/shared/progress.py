"""
Progress tracking for sequential multi-write workflows.
"""

from dataclasses import dataclass, field
from enum import Enum


class StepStatus(str, Enum):
    """Lifecycle of one write inside a workflow."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class SubmissionProgress:
    """Which steps of a workflow have been durably confirmed.

    Steps are identified by integers: question ids for response submission,
    draft positions for authoring. Pass the same object back as ``resume=``
    to continue with only the unconfirmed steps.
    """

    survey_id: int
    steps: list[int]
    confirmed_steps: set[int] = field(default_factory=set)
    tx_hashes: dict[int, str] = field(default_factory=dict)
    failed_step: int | None = None

    @property
    def total(self) -> int:
        return len(self.steps)

    @property
    def confirmed(self) -> int:
        return len(self.confirmed_steps)

    @property
    def is_complete(self) -> bool:
        return self.confirmed == self.total

    @property
    def remaining_steps(self) -> list[int]:
        return [s for s in self.steps if s not in self.confirmed_steps]

    def status_of(self, step: int) -> StepStatus:
        if step in self.confirmed_steps:
            return StepStatus.CONFIRMED
        if step == self.failed_step:
            return StepStatus.FAILED
        return StepStatus.PENDING

    def mark_confirmed(self, step: int, tx_hash: str) -> None:
        self.confirmed_steps.add(step)
        self.tx_hashes[step] = tx_hash
        if self.failed_step == step:
            self.failed_step = None

    def mark_failed(self, step: int) -> None:
        self.failed_step = step
