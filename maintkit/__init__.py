__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'maintkit'
__license__ = 'MIT'
__version__ = "0.1.0"

from .options import *
from .parser import *
from .validation import *
from .output import *
from .help import *
from .services import *
from .scripts import *
from .updates import *
from .faults import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

version_info = VersionInfo(0, 1, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the option model
__all__ += options.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parser
__all__ += parser.__all__  # type: ignore[attr-defined]
# Load the exposed API of the validator
__all__ += validation.__all__  # type: ignore[attr-defined]
# Load the exposed API of the output writer
__all__ += output.__all__  # type: ignore[attr-defined]
# Load the exposed API of the help renderer
__all__ += help.__all__  # type: ignore[attr-defined]
# Load the exposed API of the collaborators
__all__ += services.__all__  # type: ignore[attr-defined]
# Load the exposed API of the scripts
__all__ += scripts.__all__  # type: ignore[attr-defined]
# Load the exposed API of the logged updates
__all__ += updates.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
