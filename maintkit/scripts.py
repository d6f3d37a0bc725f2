"""
Maintkit script layer: the lifecycle shared by every maintenance script.

What this module provides
- Script: abstract base class. Subclasses declare options/arguments while they
  are constructed (or in configure()) and implement execute().
- State: lifecycle states, advanced strictly in order:
      CONSTRUCTED → PARAMS_LOADED → VALIDATED → EXECUTING → DONE
  with ABORTED reachable from anywhere on a fatal fault.
- run_maintenance(): process entry point (construct, setup, run, flush).

Quick start
    from maintkit import Script, run_maintenance

    class PurgeCache(Script):
        def __init__(self, **kwargs):
            super().__init__(**kwargs)
            self.add_description("Purge stale cache entries")
            self.add_option("older-than", "Age in days", takes_value=True)
            self.add_arg("bucket", "Cache bucket to purge")

        def execute(self):
            self.output("purging %s..." % self.get_arg(0))

    if __name__ == "__main__":
        run_maintenance(PurgeCache)

Fatal paths
- Parse errors and validation failures print the faults, then the help text,
  and exit with status 1. Setup errors print their message only.
- With shell=False (tests, embedding) the same faults are raised instead.
"""
import atexit
import functools
import importlib
import importlib.util
import logging
import os
import os.path
import re
import sys
import time
from abc import ABC, abstractmethod
from enum import Enum

from rich.console import Console
from rich.pretty import pprint

from . import faults
from .faults import FaultCode, InvalidValueError, ParseError, ReplicationWaitTimeout, ScriptExit, SetupError
from .help import render_help
from .options import OptionRegistry
from .output import ChannelWriter
from .parser import ArgvParser
from .services import ImmediateReplication, MappingConfig
from .utils import Unset, coalesce, mirror
from .validation import validate

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

logger = logging.getLogger(__name__)

DB_NONE = 0
DB_STD = 1
DB_ADMIN = 2

STDIN_ALL = "all"

SETTINGS_FILE = "settings.py"


class State(Enum):
    CONSTRUCTED = "constructed"
    PARAMS_LOADED = "params-loaded"
    VALIDATED = "validated"
    EXECUTING = "executing"
    DONE = "done"
    ABORTED = "aborted"


_TRANSITIONS = {
    State.CONSTRUCTED: State.PARAMS_LOADED,
    State.PARAMS_LOADED: State.VALIDATED,
    State.VALIDATED: State.EXECUTING,
    State.EXECUTING: State.DONE,
}


def _parse_bytes(limit):
    match = re.fullmatch(r"(\d+)\s*([kmg]?)b?", limit, re.IGNORECASE)
    if not match:
        raise ValueError("invalid memory limit %r" % limit)
    return int(match[1]) * 1024 ** " kmg".index(match[2].lower() or " ")


class Script(ABC):
    """
    Base class of every maintenance script.

    Class attributes
    - db_type: DB_NONE, DB_STD or DB_ADMIN. Anything but DB_NONE adds the
      --dbuser/--dbpass/--dbgroupdefault options.

    Constructor collaborators (all optional)
    - writer: ChannelWriter for standard output.
    - errors: rich Console receiving faults and error() text in shell mode.
    - shell: True for a real command-line run (faults print and exit),
      False to raise faults instead.
    - environ: environment mapping (defaults to os.environ).
    - config: Config object exposed through get_config().
    - db: Datastore handle returned by get_db().
    - replication: ReplicationWaiter used after commits.
    - install_root: overrides MAINT_INSTALL_PATH.
    """
    db_type = DB_STD

    def __init__(
            self,
            *,
            writer=None,
            errors=None,
            shell=True,
            environ=None,
            config=None,
            db=None,
            replication=None,
            install_root=Unset,
    ):
        self._environ = os.environ if environ is None else environ
        self._install_root = coalesce(install_root, self._environ.get("MAINT_INSTALL_PATH") or None)

        self._writer = writer if writer is not None else ChannelWriter()
        self._errors = errors if errors is not None else faults.console
        self._shell = shell

        self._registry = OptionRegistry()
        self._description = ""
        self._allow_unregistered = False

        self._self = None
        self._options = {}
        self._args = []
        self._ordered_options = []
        self._input_loaded = False

        self._quiet = False
        self._db_user = None
        self._db_pass = None
        self._batch_size = None
        self._required_extensions = []

        self._config = config
        self._db = db
        self._replication = replication if replication is not None else ImmediateReplication()
        self._last_replication_wait = 0.0

        self.settings_file = None
        self.wiki = None
        self.server = None
        self.db_group_default = None

        self._state = State.CONSTRUCTED

        self._add_default_params()
        self.configure()

        if shell and writer is None:
            atexit.register(self._writer.flush)

    # --- configuration phase -------------------------------------------------

    def configure(self):
        """hook for subclasses: declare options and arguments here."""

    def _add_default_params(self):
        add = functools.partial(self._registry.declare_option, group="generic")
        add("help", "Display this help message", short_alias="h")
        add("quiet", "Whether to suppress non-error output", short_alias="q")
        add("conf", "Location of the settings file, if not default", takes_value=True)
        add("wiki", "For specifying the wiki ID", takes_value=True)
        add("globals", "Output the configuration at the end of processing for debugging")
        add(
            "memory-limit",
            'Set a specific memory limit for the script, "max" for no limit or "default" to avoid changing it',
            takes_value=True,
        )
        add(
            "server",
            "The protocol and server name to use in URLs, e.g. https://example.org. This is sometimes "
            "necessary because server name detection may fail in command line scripts.",
            takes_value=True,
        )
        add("profiler", 'Profiler output format (usually "text")', takes_value=True)
        add("debug", "Enable debug logging and development settings")

        if self.db_type > DB_NONE:
            add = functools.partial(self._registry.declare_option, takes_value=True, group="dependent")
            add("dbuser", "The DB user to use for this script")
            add("dbpass", "The password to use for this script")
            add("dbgroupdefault", "The default DB group to use.")

    def add_option(self, name, description, required=False, takes_value=False, short_alias=None, repeatable=False):
        return self._registry.declare_option(name, description, required, takes_value, short_alias, repeatable)

    def add_arg(self, name, description, required=True):
        return self._registry.declare_positional(name, description, required)

    def delete_option(self, name):
        self._registry.undeclare(name)

    def supports_option(self, name):
        return self._registry.is_declared(name)

    def add_description(self, text):
        self._description = text

    def set_allow_unregistered_options(self, allow):
        self._allow_unregistered = bool(allow)

    def set_batch_size(self, size=0):
        """set the default batch size; a non-zero size exposes --batch-size."""
        self._batch_size = size
        if size:
            self._registry.declare_batch_size(size)

    def require_extension(self, name):
        """require an importable module (checked by check_required_extensions())."""
        self._required_extensions.append(name)

    # --- state ---------------------------------------------------------------

    @property
    def state(self):
        return self._state

    def _advance(self, state):
        if state is not _TRANSITIONS.get(self._state):
            raise RuntimeError("cannot move script from %s to %s" % (self._state.value, state.value))
        logger.debug("%s: %s -> %s", type(self).__name__, self._state.value, state.value)
        self._state = state

    def trigger(self, fault, /, *, help=False):
        """
        surface a fatal fault: abort, then print (shell) or raise (embedded).

        help=True appends the help text after the fault messages.
        """
        self._state = State.ABORTED
        self._writer.flush()
        logger.debug("%s aborted: %s", type(self).__name__, fault)
        options = {
            "prog": os.path.basename(self._self or type(self).__name__),
            "shell": self._shell,
            "console": self._errors,
        }
        if help:
            options["epilog"] = self.render_help()
        faults.trigger(fault, **options)

    # --- input ---------------------------------------------------------------

    registry = property(lambda self: self._registry)
    writer = property(lambda self: self._writer)
    description = property(lambda self: self._description)
    options = mirror("options")
    args = mirror("args")
    ordered_options = mirror("ordered_options")

    @property
    def name(self):
        return self._self

    @property
    def batch_size(self):
        return self._batch_size

    @property
    def db_user(self):
        return self._db_user

    @property
    def db_pass(self):
        return self._db_pass

    def _mark_loaded(self):
        self._input_loaded = True
        self._load_special_vars()
        if self._state is State.CONSTRUCTED:
            self._advance(State.PARAMS_LOADED)

    def load_with_argv(self, argv):
        """parse raw tokens (argv without the program name) into options and arguments."""
        self._registry.freeze()
        try:
            result = ArgvParser(self._registry).parse(argv)
        except ParseError as fault:
            self.trigger(fault, help=True)
            return
        self._options = result.options
        self._args = result.arguments
        self._ordered_options = result.ordered
        self._mark_loaded()

    def load_params_and_args(self, prog=None, options=None, args=None, *, argv=None):
        """
        load input once: given values win, otherwise parse argv (sys.argv by default).

        values passed here are taken verbatim and never go through the parser;
        this is how a delegated child receives its parent's input.
        """
        self._registry.freeze()
        if prog:
            self._self = prog
            self._input_loaded = True
        if options is not None:
            self._options = {
                name: list(value) if isinstance(value, list) else value for name, value in options.items()
            }
            self._input_loaded = True
        if args is not None:
            self._args = list(args)
            self._input_loaded = True

        if self._input_loaded:
            self._mark_loaded()
            return

        if argv is None:
            argv = sys.argv
        self._self = argv[0] if argv else type(self).__name__
        self.load_with_argv(argv[1:])

    def clear_params_and_args(self):
        """forget loaded input so the script can be loaded again."""
        self._options = {}
        self._args = []
        self._ordered_options = []
        self._input_loaded = False
        self._state = State.CONSTRUCTED

    def _load_special_vars(self):
        if self.has_option("dbuser"):
            self._db_user = self.get_option("dbuser")
        if self.has_option("dbpass"):
            self._db_pass = self.get_option("dbpass")
        if self.has_option("quiet"):
            self._quiet = True
        if self.has_option("batch-size"):
            try:
                self._batch_size = int(self.get_option("batch-size"))
            except (TypeError, ValueError):
                self.trigger(InvalidValueError(
                    "batch-size parameter needs a whole number, got %r" % self._options["batch-size"],
                    title="invalid value",
                    code=FaultCode.INVALID_VALUE,
                    hint="pass a count such as --batch-size 100",
                    name="batch-size",
                ), help=True)

    def has_option(self, name):
        return self._options.get(name) is not None

    def get_option(self, name, default=None):
        """value of an option; the default is remembered for later calls."""
        if self.has_option(name):
            return self._options[name]
        self._options[name] = default
        return default

    def has_arg(self, index=0):
        return 0 <= index < len(self._args) and self._args[index] is not None

    def get_arg(self, index=0, default=None):
        return self._args[index] if self.has_arg(index) else default

    def is_quiet(self):
        return self._quiet

    # --- setup ---------------------------------------------------------------

    def setup(self, argv=None):
        """
        check the execution context, load and validate the command line.
        """
        if "GATEWAY_INTERFACE" in self._environ:
            self.trigger(SetupError(
                "This script must be run from the command line",
                title="wrong execution context",
                code=FaultCode.WRONG_CONTEXT,
            ))
        if self._install_root is None:
            self.trigger(SetupError(
                "Install root not set, aborting!\n"
                "(Set MAINT_INSTALL_PATH, or call super().__init__() in your maintenance script.)",
                title="missing install root",
                code=FaultCode.MISSING_INSTALL_ROOT,
            ))
        if argv is None and not self._input_loaded and not getattr(sys, "argv", None):
            self.trigger(SetupError(
                "Cannot get command line arguments, sys.argv is not available",
                title="no command line",
                code=FaultCode.NO_ARGV,
            ))

        self.load_params_and_args(argv=argv)
        self.maybe_help()
        self.adjust_memory_limit()
        self.validate_params_and_args()

    def render_help(self):
        return render_help(self._registry, self._description, self._self or type(self).__name__)

    def maybe_help(self, force=False):
        """
        print the help text and exit when --help was given (status 0) or when forced (status 1).
        """
        if not force and not self.has_option("help"):
            return
        self._quiet = False
        self._writer.print(self.render_help())
        self._writer.flush()
        sys.exit(1 if force else 0)

    def validate_params_and_args(self):
        violations = validate(
            self._registry,
            self._options,
            self._args,
            allow_unregistered=self._allow_unregistered,
        )
        if violations:
            self.trigger(ScriptExit(violations), help=True)
        self._advance(State.VALIDATED)

    def memory_limit(self):
        return str(self.get_option("memory-limit", "max")).strip("\" '")

    def adjust_memory_limit(self):
        """apply --memory-limit: "max", "default" or a size such as 512M."""
        if (limit := self.memory_limit()) == "default":
            return
        if resource is None:
            logger.debug("memory limits are not supported on this platform")
            return
        try:
            soft, hard = resource.getrlimit(resource.RLIMIT_AS)
            if limit in ("max", "-1"):
                value = hard
            else:
                value = _parse_bytes(limit)
                if hard != resource.RLIM_INFINITY:
                    value = min(value, hard)
            resource.setrlimit(resource.RLIMIT_AS, (value, hard))
        except (ValueError, OSError) as error:
            logger.warning("could not apply memory limit %r: %s", limit, error)

    def load_settings(self):
        """
        resolve the settings file (--conf, MAINT_CONFIG_FILE, then the install root).
        """
        if "conf" in self._options:
            settings_file = self._options["conf"]
        elif self._environ.get("MAINT_CONFIG_FILE"):
            settings_file = self._environ["MAINT_CONFIG_FILE"]
        else:
            settings_file = os.path.join(self._install_root or "", SETTINGS_FILE)

        if self.has_option("wiki"):
            db, _, prefix = self.get_option("wiki").partition("-")
            self.wiki = (db, prefix)
        elif self.has_option("server"):
            self.server = self.get_option("server")

        if not (os.path.isfile(settings_file) and os.access(settings_file, os.R_OK)):
            self.trigger(SetupError(
                "A copy of your installation's %s\n"
                "must exist and be readable in the source directory.\n"
                "Use --conf to specify it." % SETTINGS_FILE,
                title="unreadable settings",
                code=FaultCode.UNREADABLE_SETTINGS,
                path=settings_file,
            ))
        self.settings_file = settings_file
        return settings_file

    def final_setup(self):
        """apply the remaining default options once settings are known."""
        if self.has_option("server"):
            self.server = self.get_option("server")
        if self.has_option("dbgroupdefault"):
            self.db_group_default = self.get_option("dbgroupdefault")
        if self.has_option("debug"):
            logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            logging.getLogger("maintkit").setLevel(logging.DEBUG)

        self.activate_profiler()
        self.after_final_setup()
        self.adjust_memory_limit()

    def after_final_setup(self):
        """hook for subclasses, runs at the end of final_setup()."""

    def activate_profiler(self):
        """hook for a profiler integration; the base class only records the request."""
        if output := self.get_option("profiler"):
            logger.info("profiler output %r requested for %s", output, type(self).__name__)

    def check_required_extensions(self):
        missing = []
        for name in self._required_extensions:
            try:
                found = importlib.util.find_spec(name) is not None
            except (ImportError, ValueError):
                found = False
            if not found:
                missing.append(name)

        if missing:
            self.trigger(SetupError(
                "The following extensions are required to be installed for this script to run: %s. "
                "Please enable them and then try again." % ", ".join(missing),
                title="missing extensions",
                code=FaultCode.MISSING_EXTENSIONS,
                missing=missing,
            ))

    def get_config(self):
        if self._config is None:
            self._config = MappingConfig()
        return self._config

    def set_config(self, config):
        self._config = config

    def globals(self):
        """with --globals, pretty-print the configuration."""
        if self.has_option("globals"):
            self._writer.flush()
            pprint(dict(self.get_config()), console=self._writer.console)

    # --- output --------------------------------------------------------------

    def output(self, text, channel=None):
        """
        print non-error output, unless --quiet.

        unchanneled text is written raw; channeled text loses one trailing
        newline and goes through the channel tracking.
        """
        if self._quiet:
            return
        text = str(text)
        if channel is None:
            self._writer.print(text)
        else:
            self._writer.write(text.removesuffix("\n"), channel)

    def error(self, text):
        """print an error line: error console in shell mode, standard output otherwise."""
        self._writer.flush()
        if self._shell:
            self._errors.file.write(text + "\n")
            self._errors.file.flush()
        else:
            self._writer.print(text + "\n")

    def fatal_error(self, text, code=1):
        self.error(text)
        self._state = State.ABORTED
        sys.exit(code)

    def count_down(self, seconds):
        """count down on one line, one second per step."""
        if self.is_quiet():
            return
        for index in range(seconds, -1, -1):
            if index != seconds:
                self._writer.backspace(len(str(index + 1)))
            self.output(index)
            if index:
                time.sleep(1)
        self.output("\n")

    @staticmethod
    def read_console(prompt="> "):
        """read one line from the console; None on end of input."""
        if sys.stdin.isatty():
            try:
                return input(prompt)
            except EOFError:
                return None
        line = sys.stdin.readline()
        if not line:
            return None
        return line.strip()

    @staticmethod
    def get_stdin(length=None):
        """STDIN_ALL reads everything, no length returns the stream, else one line."""
        if length == STDIN_ALL:
            return sys.stdin.read()
        if not length:
            return sys.stdin
        return sys.stdin.readline(length).rstrip()

    @staticmethod
    def get_term_size():
        """(columns, rows) of the terminal."""
        return tuple(Console().size)

    # --- datastore -----------------------------------------------------------

    def get_db(self):
        if self._db is None:
            self.trigger(SetupError(
                "No datastore is configured for this script",
                title="no datastore",
                code=FaultCode.NO_DATASTORE,
            ))
        return self._db

    def set_db(self, db):
        self._db = db

    def begin_transaction(self, db, fname):
        db.begin(fname)

    def commit_transaction(self, db, fname):
        """
        commit, then wait for replicas; a replication timeout is soft (returns False).
        """
        db.commit(fname)
        try:
            self._replication.wait_for_replication(timeout=30, if_writes_since=self._last_replication_wait)
        except ReplicationWaitTimeout as timeout:
            logger.warning("%s: replicas did not catch up after commit: %s", fname, timeout)
            return False
        self._last_replication_wait = time.time()
        return True

    def rollback_transaction(self, db, fname):
        db.rollback(fname)

    # --- delegation ----------------------------------------------------------

    def run_child(self, script, /):
        """
        build another script that shares this one's input, output and datastore.

        script is a Script subclass or a "package.module:Class" path.
        """
        if isinstance(script, str):
            module, _, qualname = script.rpartition(":") if ":" in script else script.rpartition(".")
            try:
                script = functools.reduce(getattr, qualname.split("."), importlib.import_module(module))
            except (ImportError, AttributeError, ValueError):
                self.trigger(SetupError(
                    "Cannot spawn child: %s" % script,
                    title="cannot spawn child",
                    code=FaultCode.CHILD_SPAWN,
                ))

        child = script(
            writer=self._writer,
            errors=self._errors,
            shell=self._shell,
            environ=self._environ,
            config=self._config,
            replication=self._replication,
            install_root=self._install_root,
        )
        child.load_params_and_args(self._self, self._options, self._args)
        if self._db is not None:
            child.set_db(self._db)
        return child

    # --- execution -----------------------------------------------------------

    @abstractmethod
    def execute(self):
        """the job body; the return value is advisory."""

    def run(self, argv=None):
        """
        drive the whole lifecycle and return whatever execute() returned.
        """
        if self._state is State.CONSTRUCTED:
            self.setup(argv)
        elif self._state is State.PARAMS_LOADED:
            self.validate_params_and_args()
        self.load_settings()
        self.final_setup()
        self.check_required_extensions()

        self._advance(State.EXECUTING)
        result = self.execute()
        self._advance(State.DONE)

        self.globals()
        self._writer.flush()
        return result


def run_maintenance(script, /, argv=None, **options):
    """
    construct a script and run it as a command-line process.
    """
    return script(**options).run(argv)


__all__ = (
    "DB_NONE",
    "DB_STD",
    "DB_ADMIN",
    "STDIN_ALL",
    "State",
    "Script",
    "run_maintenance",
)
