from .core import MacroEngine, Preprocessor
from .exceptions import (AllocationError, MacroprocError, NotInitializedError,
                         ParseError)
from .symbols import SymbolTable

__version__ = "1.0.0"

__all__ = [
    "AllocationError", "MacroEngine", "MacroprocError", "NotInitializedError",
    "ParseError", "Preprocessor", "SymbolTable", "preprocess",
]


def preprocess(f_object, line_ending="\n", include_paths=(),
               header_handler=None, defines=None, ignore_headers=()):
    r"""
    Preprocess f_object, yielding chunks of text that combined give the
    output lines, delimited with the given line ending.

    :param f_object: iterable of lines, ideally with a ``name`` attribute
    :param line_ending: line ending used for output, ``"\n"`` by default
    :param include_paths: directories searched by ``#include``
    :param header_handler: object resolving and opening headers
    :param defines: mapping of macros defined before processing starts
    :param ignore_headers: headers whose ``#include`` is dropped
    """
    preprocessor = Preprocessor(line_ending=line_ending,
                                include_paths=include_paths,
                                header_handler=header_handler,
                                defines=defines,
                                ignore_headers=ignore_headers)
    return preprocessor.preprocess(f_object)
