"""
Idempotent one-shot jobs.

A job that ran to completion leaves a completion record behind (one row keyed
by the job's update key), and later runs are skipped unless forced.

- Job: anything with run() -> bool | None (falsy means failure).
- LoggedJob: wraps any Job with the record check and the record insert.
- CompletionLog: the record table, read and written through a Datastore.
- LoggedUpdateScript: a Script whose execute() runs its do_db_updates() through
  a LoggedJob; adds --force and a batch size of 200.
"""
import functools
import logging
from abc import abstractmethod
from enum import Enum
from typing import Protocol, runtime_checkable

from .faults import CompletionRecordInsertFailure, FaultCode
from .scripts import Script

logger = logging.getLogger(__name__)

UPDATE_LOG_TABLE = "updatelog"


@runtime_checkable
class Job(Protocol):
    def run(self) -> bool | None: ...


class CallableJob:
    """adapt a plain callable to the Job protocol."""

    def __init__(self, function, /):
        self.function = function

    def run(self):
        return self.function()


class JobOutcome(Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class CompletionLog:
    """
    completion records, one row per key in the update log table.
    """

    def __init__(self, db, table=UPDATE_LOG_TABLE):
        self.db = db
        self.table = table

    def exists(self, key):
        return self.db.select_row(self.table, "1", {"ul_key": key}, "CompletionLog.exists") is not None

    def record(self, key):
        """insert the record for key; an already existing record is fine."""
        if not self.db.insert(self.table, {"ul_key": key}, "CompletionLog.record", ignore=True):
            raise CompletionRecordInsertFailure(
                "Unable to log update '%s' as completed." % key,
                title="completion record",
                code=FaultCode.COMPLETION_RECORD,
                key=key,
            )


class LoggedJob:
    """
    run a job at most once per key, unless forced.

    outcomes
    - SKIPPED: a record exists and force is off; the job never runs.
    - FAILED: the job returned a falsy result, or its record could not be written.
    - COMPLETED: the job succeeded and its record exists.
    """

    def __init__(self, job, key, log, *, force=False, output=functools.partial(print, end="")):
        self.job = job
        self.key = key
        self.log = log
        self.force = force
        self.output = output

    def skipped_message(self):
        return "Update '%s' already logged as completed." % self.key

    def failed_message(self):
        return "Unable to log update '%s' as completed." % self.key

    def run(self):
        if not self.force and self.log.exists(self.key):
            self.output("..." + self.skipped_message() + "\n")
            return JobOutcome.SKIPPED

        if not self.job.run():
            logger.debug("job %r reported failure", self.key)
            return JobOutcome.FAILED

        try:
            self.log.record(self.key)
        except CompletionRecordInsertFailure as failure:
            logger.warning("%s", failure)
            self.output(self.failed_message() + "\n")
            return JobOutcome.FAILED

        return JobOutcome.COMPLETED


class LoggedUpdateScript(Script):
    """
    a maintenance script that runs its updates once per update key.
    """

    def _add_default_params(self):
        super()._add_default_params()
        self.add_option("force", "Run the update even if it was completed already")
        self.set_batch_size(200)

    @abstractmethod
    def update_key(self):
        """key of the completion record for this update."""

    @abstractmethod
    def do_db_updates(self):
        """the update body; return a truthy value on success."""

    def execute(self):
        job = LoggedJob(
            CallableJob(self.do_db_updates),
            self.update_key(),
            CompletionLog(self.get_db()),
            force=self.has_option("force"),
            output=self.output,
        )
        self.outcome = job.run()
        return self.outcome is not JobOutcome.FAILED


__all__ = (
    "UPDATE_LOG_TABLE",
    "Job",
    "CallableJob",
    "JobOutcome",
    "CompletionLog",
    "LoggedJob",
    "LoggedUpdateScript",
)
