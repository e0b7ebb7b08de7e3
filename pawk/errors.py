"""Error taxonomy for the compiler pipeline and the AVM."""

from __future__ import annotations


class AwkError(Exception):
    """Base class for every failure raised by pawk."""


class AwkSyntaxError(AwkError):
    """Raised when AWK source cannot be tokenized or parsed."""

    def __init__(self, message: str, line: int = 0, source: str = ""):
        self.message = message
        self.line = line
        self.source = source
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = f"{self.source}:{self.line}" if self.source else f"line {self.line}"
        return f"{where}: {self.message}" if self.line else self.message


class AwkSemanticError(AwkError):
    """Raised when a well-formed program is not valid AWK (bad calls, misplaced statements)."""


class UnresolvedSymbolError(AwkSemanticError):
    """Raised when a function call has no definition after both resolution passes."""

    def __init__(self, function_name: str, line: int = 0):
        self.function_name = function_name
        self.line = line
        super().__init__(
            f"line {line}: function '{function_name}' never defined"
            if line
            else f"function '{function_name}' never defined"
        )


class LinkError(AwkError):
    """Raised when the tuple queue is internally inconsistent at link time."""


class AwkRuntimeError(AwkError):
    """Fatal failure while the AVM executes a tuple queue."""

    def __init__(self, message: str, line: int = 0):
        self.message = message
        self.line = line
        super().__init__(message)

    def __str__(self) -> str:
        if self.line:
            return f"line {self.line}: {self.message}"
        return self.message


class UnresolvedExtensionError(AwkRuntimeError):
    """Raised when an extension function is not registered with the running AVM."""

    def __init__(self, name: str, line: int = 0):
        self.name = name
        super().__init__(f"extension function '{name}' is not registered", line)
