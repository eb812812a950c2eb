class MacroprocError(Exception):
    pass


class ParseError(MacroprocError):
    pass


class AllocationError(MacroprocError, MemoryError):
    """Raised when bucket storage for the symbol table cannot be obtained."""


class NotInitializedError(MacroprocError, RuntimeError):
    """Raised when a cleared symbol table is used before ``init()``."""
