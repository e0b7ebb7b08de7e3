"""pawk, an AWK language processor."""

from .api import (  # noqa: F401
    compile_source,
    dump_ast,
    dump_tuples,
    parse_source,
    run_source,
)
from .compiler import AwkIntermediateCompiler  # noqa: F401
from .extensions import ExtensionTable  # noqa: F401
from .settings import AwkSettings  # noqa: F401
from .sources import ScriptSource  # noqa: F401
from .vm import AVM  # noqa: F401
