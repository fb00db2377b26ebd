# ============================================================================
# EXECUTION RECORD MODEL
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core model - Per-process runtime state and run summary
# PURPOSE: Track state of each process within one run
# CREATED: 18 OCT 2026
# ============================================================================
"""
Execution Record Model

ExecutionRecord tracks the runtime state of a single process within a run.

Key concept:
- Process = TEMPLATE (what to run)
- ExecutionRecord = INSTANCE (what happened this run)

Each run creates N records (one per process). Only the scheduler mutates
them. When the run drains, the records are summarised into a RunResult.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import ProcessStatus, RunStatus


class ExecutionRecord(BaseModel):
    """
    Runtime state of a process within one run.

    Lifecycle:
        1. Created with status=PENDING when the run starts
        2. Transitions to READY when every upstream succeeded or was skipped
        3. Transitions to RUNNING when a worker slot picks it up
        4. Transitions to SUCCEEDED/SKIPPED/FAILED when the slot finishes
        5. Or jumps from PENDING/READY to ABORTED when an ancestor fails
    """
    name: str = Field(..., description="Process name")
    status: ProcessStatus = Field(default=ProcessStatus.PENDING)

    # Resolution results (set at dispatch)
    command: Optional[str] = Field(default=None, description="Fully resolved command line")
    outputs: Dict[str, str] = Field(default_factory=dict, description="Output port -> path")
    inputs: Dict[str, str] = Field(default_factory=dict, description="Input port -> path")

    # Outcome
    exit_code: Optional[int] = None
    error_message: Optional[str] = Field(default=None, max_length=4000)
    aborted_by: Optional[str] = Field(
        default=None,
        description="Failed ancestor that caused this process to be aborted"
    )

    # Timestamps
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()

    @computed_field
    @property
    def is_successful(self) -> bool:
        return self.status.is_successful()

    @computed_field
    @property
    def duration_seconds(self) -> Optional[float]:
        if not self.started_at or not self.completed_at:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def can_transition_to(self, new_status: ProcessStatus) -> bool:
        """
        Validate if a status transition is allowed.

        Valid transitions:
            PENDING -> READY, ABORTED
            READY -> RUNNING, ABORTED
            RUNNING -> SUCCEEDED, SKIPPED, FAILED
            SUCCEEDED, SKIPPED, FAILED, ABORTED -> (none, terminal)
        """
        allowed = {
            ProcessStatus.PENDING: {ProcessStatus.READY, ProcessStatus.ABORTED},
            ProcessStatus.READY: {ProcessStatus.RUNNING, ProcessStatus.ABORTED},
            ProcessStatus.RUNNING: {
                ProcessStatus.SUCCEEDED,
                ProcessStatus.SKIPPED,
                ProcessStatus.FAILED,
            },
        }
        return new_status in allowed.get(self.status, set())

    def _transition(self, new_status: ProcessStatus) -> None:
        if not self.can_transition_to(new_status):
            raise ValueError(
                f"Process '{self.name}': cannot transition from "
                f"{self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def mark_ready(self) -> None:
        self._transition(ProcessStatus.READY)

    def mark_running(self) -> None:
        self._transition(ProcessStatus.RUNNING)
        self.started_at = datetime.now(timezone.utc)

    def mark_succeeded(self, exit_code: int = 0) -> None:
        self._transition(ProcessStatus.SUCCEEDED)
        self.exit_code = exit_code
        self.completed_at = datetime.now(timezone.utc)

    def mark_skipped(self) -> None:
        """Outputs already up to date; the command was not invoked."""
        self._transition(ProcessStatus.SKIPPED)
        self.completed_at = datetime.now(timezone.utc)

    def mark_failed(self, error_message: str, exit_code: Optional[int] = None) -> None:
        self._transition(ProcessStatus.FAILED)
        self.error_message = error_message[:4000]
        self.exit_code = exit_code
        self.completed_at = datetime.now(timezone.utc)

    def mark_aborted(self, failed_ancestor: str, reason: Optional[str] = None) -> None:
        self._transition(ProcessStatus.ABORTED)
        self.aborted_by = failed_ancestor
        self.error_message = reason or f"Aborted: upstream process '{failed_ancestor}' failed"
        self.completed_at = datetime.now(timezone.utc)


class RunResult(BaseModel):
    """
    Aggregate outcome of one run.

    Lists every process in declaration order, so a failed run reports its
    full set of casualties.
    """
    workflow: str
    run_id: str
    records: List[ExecutionRecord] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def success(self) -> bool:
        return not any(
            r.status in (ProcessStatus.FAILED, ProcessStatus.ABORTED)
            for r in self.records
        )

    @computed_field
    @property
    def status(self) -> RunStatus:
        return RunStatus.SUCCESS if self.success else RunStatus.FAILED

    def get(self, name: str) -> ExecutionRecord:
        for record in self.records:
            if record.name == name:
                return record
        raise KeyError(f"No record for process '{name}'")

    def by_status(self, status: ProcessStatus) -> List[ExecutionRecord]:
        return [r for r in self.records if r.status == status]

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ProcessStatus}
        for record in self.records:
            counts[record.status.value] += 1
        return counts

    @property
    def failures(self) -> List[ExecutionRecord]:
        return [
            r for r in self.records
            if r.status in (ProcessStatus.FAILED, ProcessStatus.ABORTED)
        ]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict for run reports."""
        return self.model_dump(mode="json")

    def summary_lines(self) -> List[str]:
        """One human-readable line per process plus a totals line."""
        lines = []
        for record in self.records:
            line = f"{record.status.value.upper():<10} {record.name}"
            if record.error_message:
                line += f"  ({record.error_message})"
            lines.append(line)
        totals = ", ".join(f"{k}={v}" for k, v in self.counts().items() if v)
        lines.append(f"Run {self.run_id} {self.status.value}: {totals}")
        return lines


__all__ = ["ExecutionRecord", "RunResult"]
