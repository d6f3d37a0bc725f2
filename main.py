from maintkit import *


class PurgeCache(Script):
    db_type = DB_NONE

    def configure(self):
        self.add_description("Purge stale entries from a cache bucket")
        self.add_option("older-than", "Only purge entries older than this many days", takes_value=True)
        self.add_option("dry-run", "Report what would be purged without purging it", short_alias="n")
        self.add_arg("bucket", "Cache bucket to purge")
        self.set_batch_size(100)

    def execute(self):
        bucket = self.get_arg(0)
        days = int(self.get_option("older-than", 30))
        self.output("Purging %s (older than %d days, batch %d)...\n" % (bucket, days, self.batch_size))
        for batch in range(3):
            self.output(".", channel="progress")
        self.output("done.\n")
        return True


if __name__ == '__main__':
    run_maintenance(PurgeCache)
