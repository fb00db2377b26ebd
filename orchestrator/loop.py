# ============================================================================
# SCHEDULING LOOP
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Bounded-concurrency execution of a sealed workflow
# PURPOSE: Drive a workflow run from PENDING to every process terminal
# CREATED: 18 OCT 2026
# ============================================================================
"""
Scheduling Loop

The loop drives one run of a sealed workflow:
1. Create an ExecutionRecord per process; mark dependency-free ones READY
2. While a worker slot is free, take the first READY process (declaration
   order), resolve its templates and start it
3. Wait for any running process to finish
4. Record the outcome:
   - SUCCEEDED / SKIPPED: publish outputs, release dependents
   - FAILED: abort every not-yet-terminal descendant
5. Repeat until nothing is READY or RUNNING

Only this coroutine mutates records, so completions arriving from several
worker slots never race on the ready set. Worker slots are asyncio tasks
that block only on their external process.

Running siblings are never killed when a process fails. Cancelling the run
cancels the worker tasks, whose executors stop and reap their children.
"""

import asyncio
import heapq
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from core.config import EngineDefaults, get_defaults
from core.contracts import ProcessStatus
from core.errors import ExternalProcessError, TemplateError
from core.logging import get_logger, log_checkpoint, log_context
from core.models import ExecutionRecord, Process, RunResult, Workflow
from orchestrator.engine.evaluator import get_evaluator
from orchestrator.engine.templates import TemplateResolver, TemplateValues, get_resolver
from worker.executor import CommandExecutor, CommandResult
from worker.filesystem import FileSystem, LocalFileSystem, outputs_up_to_date

logger = get_logger(__name__)


@dataclass
class _Attempt:
    """What a worker slot reports back to the loop."""
    status: ProcessStatus
    exit_code: Optional[int] = None
    error_message: Optional[str] = None


@dataclass
class _Dispatch:
    """Resolved, concrete view of a process ready to run."""
    command: str
    outputs: Dict[str, str]
    inputs: Dict[str, str]
    dependency_paths: List[str]


class Scheduler:
    """
    Executes a sealed workflow with at most max_concurrency processes
    running at once.

    A Scheduler instance performs a single run; create a new one (or call
    run_workflow again) to re-run the same workflow.
    """

    def __init__(
        self,
        workflow: Workflow,
        max_concurrency: Optional[int] = None,
        defaults: Optional[EngineDefaults] = None,
        filesystem: Optional[FileSystem] = None,
        executor: Optional[CommandExecutor] = None,
        resolver: Optional[TemplateResolver] = None,
        run_id: Optional[str] = None,
    ):
        """
        Initialize scheduler.

        Args:
            workflow: Workflow to run; sealed here if the caller has not
            max_concurrency: Worker slots (default: defaults.max_concurrency)
            defaults: Engine defaults (default: from PIPELINE_* environment)
            filesystem: Filesystem for the skip rule and output checks
            executor: External command executor
            resolver: Template resolver (default: shared instance)
            run_id: Identifier used in logs and the run result

        Raises:
            ValueError: If max_concurrency < 1
            WorkflowError: If sealing the workflow fails
        """
        self.defaults = defaults or get_defaults()
        self.max_concurrency = (
            max_concurrency if max_concurrency is not None else self.defaults.max_concurrency
        )
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")

        self.workflow = workflow.seal()
        self.fs = filesystem or LocalFileSystem()
        self.executor = executor or CommandExecutor(
            shell=self.defaults.shell,
            kill_grace_seconds=self.defaults.kill_grace_seconds,
        )
        self.resolver = resolver or get_resolver()
        self.run_id = run_id or uuid.uuid4().hex[:12]

        self._evaluator = get_evaluator()
        self._order = {name: i for i, name in enumerate(self.workflow.process_names)}
        self._records: Dict[str, ExecutionRecord] = {}
        self._ready: List[Tuple[int, str]] = []
        self._claimed: Dict[str, str] = {}
        self._halted_by: Optional[str] = None
        self._started = False

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self) -> RunResult:
        """
        Run every process once (subject to the skip rule).

        Returns:
            RunResult with one record per process in declaration order.
            Per-process failures are recorded there, never raised.
        """
        if self._started:
            raise RuntimeError("A Scheduler performs a single run; create a new one")
        self._started = True

        result = RunResult(workflow=self.workflow.name, run_id=self.run_id)
        self._records = {
            name: ExecutionRecord(name=name) for name in self.workflow.process_names
        }

        with log_context(run_id=self.run_id, workflow=self.workflow.name):
            log_checkpoint("run_started", {
                "processes": len(self._records),
                "layers": len(self.workflow.layers()),
                "max_concurrency": self.max_concurrency,
            })

            statuses = self._statuses()
            for name in self._evaluator.find_ready_nodes(self.workflow.graph, statuses).ready_nodes:
                self._make_ready(name)

            running: Dict[asyncio.Task, str] = {}
            try:
                while True:
                    while self._ready and len(running) < self.max_concurrency:
                        _, name = heapq.heappop(self._ready)
                        if self._records[name].status != ProcessStatus.READY:
                            continue
                        task = self._dispatch(name)
                        if task is not None:
                            running[task] = name

                    if not running:
                        break

                    done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                    for task in sorted(done, key=lambda t: self._order[running[t]]):
                        name = running.pop(task)
                        self._complete(name, task.result())
            finally:
                if running:
                    logger.warning(f"Run interrupted, stopping {len(running)} running processes")
                    for task in running:
                        task.cancel()
                    await asyncio.gather(*running, return_exceptions=True)

            self._abort_stranded()

            result.records = [self._records[name] for name in self.workflow.process_names]
            result.completed_at = datetime.now(timezone.utc)
            log_checkpoint("run_completed", {
                "status": result.status.value,
                "counts": result.counts(),
            })

        return result

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def _dispatch(self, name: str) -> Optional[asyncio.Task]:
        """Resolve a READY process and start its worker task."""
        process = self.workflow.get_process(name)
        record = self._records[name]
        record.mark_running()

        try:
            dispatch = self.resolve(process)
        except TemplateError as e:
            with log_context(process=name):
                logger.error(f"Template resolution failed: {e}")
            self._fail(name, f"Template resolution error: {e}")
            return None

        conflict = self._claim_outputs(name, dispatch)
        if conflict:
            with log_context(process=name):
                logger.error(conflict)
            self._fail(name, conflict)
            return None

        record.command = dispatch.command
        record.outputs = dict(dispatch.outputs)
        record.inputs = dict(dispatch.inputs)

        timeout = process.timeout_seconds or self.defaults.process_timeout_seconds
        return asyncio.create_task(
            self._attempt(name, dispatch, timeout),
            name=f"process:{name}",
        )

    def _claim_outputs(self, name: str, dispatch: _Dispatch) -> Optional[str]:
        """Reserve resolved output paths; returns an error if one is taken."""
        paths = {port: os.path.normpath(os.path.abspath(path))
                 for port, path in dispatch.outputs.items()}
        for port, path in paths.items():
            owner = self._claimed.get(path)
            if owner is not None and owner != name:
                return (
                    f"Output '{port}' resolves to '{path}', "
                    f"already written by '{owner}' in this run"
                )
        for path in paths.values():
            self._claimed[path] = name
        return None

    def resolve(self, process: Process) -> _Dispatch:
        """
        Materialize the command and output paths of a process.

        Upstream values come from the records of processes that already
        SUCCEEDED or were SKIPPED.

        Raises:
            TemplateError: If any reference cannot be resolved
        """
        values = TemplateValues()

        for param in process.params.values():
            if param.value is not None:
                values.params[param.name] = param.value.render()
            elif param.source is not None:
                values.params[param.name] = self._upstream_path(process, param.source)

        for port in process.inputs.values():
            if port.source is not None:
                values.inputs[port.name] = self._upstream_path(process, port.source)

        for port in process.outputs.values():
            if port.template is None:
                raise TemplateError(
                    f"Output port '{port.name}' of '{process.name}' has no path template"
                )
            values.outputs[port.name] = self.resolver.resolve(port.template, values.lookup)

        command = self.resolver.resolve(process.command_template, values.lookup)

        dependency_paths = list(values.inputs.values())
        dependency_paths.extend(
            values.params[p.name] for p in process.params.values() if p.source is not None
        )
        return _Dispatch(
            command=command,
            outputs=dict(values.outputs),
            inputs=dict(values.inputs),
            dependency_paths=dependency_paths,
        )

    def _upstream_path(self, process: Process, ref) -> str:
        upstream = self._records.get(ref.process)
        if upstream is None or not upstream.is_successful or ref.port not in upstream.outputs:
            raise TemplateError(
                f"Upstream output '{ref}' of '{process.name}' is not available"
            )
        return upstream.outputs[ref.port]

    # =========================================================================
    # WORKER SLOT
    # =========================================================================

    async def _attempt(self, name: str, dispatch: _Dispatch, timeout: Optional[float]) -> _Attempt:
        """Skip check, then run the command and verify its outputs."""
        with log_context(process=name):
            try:
                if outputs_up_to_date(self.fs, dispatch.outputs.values(), dispatch.dependency_paths):
                    logger.info("Outputs up to date, skipping")
                    return _Attempt(status=ProcessStatus.SKIPPED)

                log_checkpoint("process_dispatched", {"command": dispatch.command})
                result = await self.executor.run(dispatch.command, timeout=timeout)
                self._check_result(result, dispatch)
                logger.info(
                    f"Process succeeded in {result.duration_seconds:.2f}s",
                    extra={"outputs": dispatch.outputs},
                )
                return _Attempt(status=ProcessStatus.SUCCEEDED, exit_code=result.exit_code)

            except ExternalProcessError as e:
                logger.error(f"Process failed: {e}")
                self._remove_partial_outputs(dispatch)
                return _Attempt(
                    status=ProcessStatus.FAILED,
                    exit_code=e.exit_code,
                    error_message=str(e),
                )

            except Exception as e:
                logger.exception("Process failed with exception")
                self._remove_partial_outputs(dispatch)
                return _Attempt(
                    status=ProcessStatus.FAILED,
                    error_message=f"{type(e).__name__}: {e}",
                )

    def _check_result(self, result: CommandResult, dispatch: _Dispatch) -> None:
        """
        Raises:
            ExternalProcessError: On timeout, non-zero exit or missing outputs
        """
        if result.timed_out:
            raise ExternalProcessError(
                f"Command timed out after {result.duration_seconds:.1f}s"
            )
        if result.exit_code != 0:
            message = f"Command exited with status {result.exit_code}"
            tail = result.stderr_tail(self.defaults.stderr_tail_chars)
            if tail:
                message += f": {tail}"
            raise ExternalProcessError(message, exit_code=result.exit_code)

        missing = [path for path in dispatch.outputs.values() if not self.fs.exists(path)]
        if missing:
            raise ExternalProcessError(
                f"Command exited 0 but did not write: {', '.join(missing)}",
                exit_code=result.exit_code,
                missing_outputs=missing,
            )

    def _remove_partial_outputs(self, dispatch: _Dispatch) -> None:
        if not self.defaults.remove_partial_outputs:
            return
        for path in dispatch.outputs.values():
            if self.fs.remove(path):
                logger.info(f"Removed partial output {path}")

    # =========================================================================
    # BOOKKEEPING (loop coroutine only)
    # =========================================================================

    def _complete(self, name: str, attempt: _Attempt) -> None:
        record = self._records[name]

        if attempt.status == ProcessStatus.SKIPPED:
            record.mark_skipped()
        elif attempt.status == ProcessStatus.SUCCEEDED:
            record.mark_succeeded(attempt.exit_code or 0)
        else:
            self._fail(name, attempt.error_message or "Process failed", attempt.exit_code)
            return

        with log_context(process=name):
            log_checkpoint("process_completed", {"status": record.status.value})
        self._release_dependents(name)

    def _fail(self, name: str, error_message: str, exit_code: Optional[int] = None) -> None:
        self._records[name].mark_failed(error_message, exit_code)
        with log_context(process=name):
            log_checkpoint("process_failed", {"error": error_message})

        aborted = []
        for descendant in self.workflow.descendants(name):
            record = self._records[descendant]
            if record.status in (ProcessStatus.PENDING, ProcessStatus.READY):
                record.mark_aborted(name)
                aborted.append(descendant)
        if aborted:
            logger.warning(f"Aborted {len(aborted)} processes downstream of '{name}': {aborted}")

        if not self.defaults.keep_going and self._halted_by is None:
            self._halted_by = name
            logger.warning(f"keep_going disabled: no new processes start after '{name}' failed")

    def _release_dependents(self, name: str) -> None:
        statuses = self._statuses()
        candidates = self.workflow.dependents(name)
        for dependent in self._evaluator.find_ready_nodes(
            self.workflow.graph, statuses, candidates
        ).ready_nodes:
            if self._halted_by is not None:
                self._records[dependent].mark_aborted(
                    self._halted_by,
                    reason=f"Aborted: run halted after '{self._halted_by}' failed",
                )
            else:
                self._make_ready(dependent)

    def _make_ready(self, name: str) -> None:
        self._records[name].mark_ready()
        heapq.heappush(self._ready, (self._order[name], name))

    def _abort_stranded(self) -> None:
        """Any record still PENDING/READY once the loop drains cannot run."""
        for name, record in self._records.items():
            if record.status in (ProcessStatus.PENDING, ProcessStatus.READY):
                blocker = self._halted_by or next(
                    (d for d in self.workflow.dependencies(name)
                     if not self._records[d].is_successful),
                    "unknown",
                )
                record.mark_aborted(blocker, reason=f"Aborted: never became runnable ({blocker})")

    def _statuses(self) -> Dict[str, ProcessStatus]:
        return {name: record.status for name, record in self._records.items()}


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def run_workflow(
    workflow: Workflow,
    max_concurrency: Optional[int] = None,
    **kwargs,
) -> RunResult:
    """
    Run a workflow to completion from synchronous code.

    Args:
        workflow: Workflow to run (sealed if not already)
        max_concurrency: Worker slots
        **kwargs: Passed to Scheduler

    Returns:
        RunResult; check result.success
    """
    scheduler = Scheduler(workflow, max_concurrency=max_concurrency, **kwargs)
    return asyncio.run(scheduler.run())


__all__ = ["Scheduler", "run_workflow"]
