"""
Run-once job tests (completion records, force, insert failures).
"""

import io
import os
import tempfile
import unittest
from unittest import TestCase

from rich.console import Console

from maintkit import (
    CallableJob,
    ChannelWriter,
    CompletionLog,
    JobOutcome,
    LoggedJob,
    LoggedUpdateScript,
    MemoryDatastore,
)
from maintkit.faults import CompletionRecordInsertFailure


class RejectingDatastore(MemoryDatastore):
    def insert(self, table, row, fname, *, ignore=False):
        return False


class CountingJob:
    def __init__(self, result=True):
        self.result = result
        self.calls = 0

    def run(self):
        self.calls += 1
        return self.result


class TestCompletionLog(TestCase):
    def testRecordAndExists(self):
        log = CompletionLog(MemoryDatastore(unique={"updatelog": ("ul_key",)}))
        self.assertFalse(log.exists("populate-index"))
        log.record("populate-index")
        self.assertTrue(log.exists("populate-index"))

    def testDuplicateRecordTolerated(self):
        db = MemoryDatastore(unique={"updatelog": ("ul_key",)})
        log = CompletionLog(db)
        log.record("populate-index")
        log.record("populate-index")
        self.assertEqual(db.tables["updatelog"], [{"ul_key": "populate-index"}])

    def testInsertFailureRaises(self):
        with self.assertRaises(CompletionRecordInsertFailure):
            CompletionLog(RejectingDatastore()).record("populate-index")


class TestLoggedJob(TestCase):
    def setUp(self):
        self.messages = []
        self.log = CompletionLog(MemoryDatastore(unique={"updatelog": ("ul_key",)}))

    def wrap(self, job, **options):
        return LoggedJob(job, "populate-index", self.log, output=self.messages.append, **options)

    def testFirstRunCompletesAndRecords(self):
        job = CountingJob()
        self.assertIs(self.wrap(job).run(), JobOutcome.COMPLETED)
        self.assertEqual(job.calls, 1)
        self.assertTrue(self.log.exists("populate-index"))

    def testSecondRunSkipped(self):
        job = CountingJob()
        self.wrap(job).run()
        self.assertIs(self.wrap(job).run(), JobOutcome.SKIPPED)
        self.assertEqual(job.calls, 1)
        self.assertEqual(self.messages, ["...Update 'populate-index' already logged as completed.\n"])

    def testForceRunsAgain(self):
        job = CountingJob()
        self.wrap(job).run()
        self.assertIs(self.wrap(job, force=True).run(), JobOutcome.COMPLETED)
        self.assertEqual(job.calls, 2)

    def testFailingBodyLeavesNoRecord(self):
        self.assertIs(self.wrap(CountingJob(result=False)).run(), JobOutcome.FAILED)
        self.assertFalse(self.log.exists("populate-index"))

    def testNoneResultIsFailure(self):
        self.assertIs(self.wrap(CallableJob(lambda: None)).run(), JobOutcome.FAILED)

    def testRecordFailureFailsJob(self):
        job = LoggedJob(
            CountingJob(), "populate-index", CompletionLog(RejectingDatastore()), output=self.messages.append
        )
        self.assertIs(job.run(), JobOutcome.FAILED)
        self.assertEqual(self.messages, ["Unable to log update 'populate-index' as completed.\n"])


class PopulateIndex(LoggedUpdateScript):
    def configure(self):
        self.updates = 0

    def update_key(self):
        return "populate-index"

    def do_db_updates(self):
        self.updates += 1
        self.output("populated\n")
        return True


class TunedIndex(PopulateIndex):
    def configure(self):
        super().configure()
        self.set_batch_size(500)
        self.delete_option("force")
        self.add_option("force", "Rebuild the index from scratch", short_alias="f")


class TestLoggedUpdateScript(TestCase):
    def setUp(self):
        self.root = tempfile.TemporaryDirectory()
        self.addCleanup(self.root.cleanup)
        with open(os.path.join(self.root.name, "settings.py"), "w") as file:
            file.write("")
        self.stdout = io.StringIO()
        self.db = MemoryDatastore(unique={"updatelog": ("ul_key",)})

    def make(self, script_class=PopulateIndex):
        return script_class(
            writer=ChannelWriter(Console(file=self.stdout, width=200)),
            errors=Console(file=io.StringIO()),
            shell=False,
            environ={"MAINT_INSTALL_PATH": self.root.name},
            db=self.db,
        )

    def testDefaults(self):
        script = self.make()
        self.assertTrue(script.supports_option("force"))
        self.assertEqual(script.batch_size, 200)

    def testConfigureOverridesDefaults(self):
        script = self.make(TunedIndex)
        self.assertEqual(script.batch_size, 500)
        self.assertEqual(
            script.registry.get("batch-size").description, "Run this many operations per batch, default: 500"
        )
        self.assertEqual(script.registry.get("force").short_alias, "f")

    def testForceShortAliasFromConfigure(self):
        self.make(TunedIndex).run(["populate"])
        script = self.make(TunedIndex)
        script.run(["populate", "-f"])
        self.assertIs(script.outcome, JobOutcome.COMPLETED)

    def testRunsOnce(self):
        first = self.make()
        self.assertTrue(first.run(["populate"]))
        self.assertIs(first.outcome, JobOutcome.COMPLETED)

        second = self.make()
        self.assertTrue(second.run(["populate"]))
        self.assertIs(second.outcome, JobOutcome.SKIPPED)
        self.assertEqual(second.updates, 0)
        self.assertEqual(
            self.stdout.getvalue(),
            "populated\n...Update 'populate-index' already logged as completed.\n",
        )

    def testForce(self):
        self.make().run(["populate"])
        script = self.make()
        script.run(["populate", "--force"])
        self.assertEqual(script.updates, 1)
        self.assertIs(script.outcome, JobOutcome.COMPLETED)


if __name__ == "__main__":
    unittest.main()
