import os
import cProfile

import pytest

from macroproc.core import MacroEngine
from macroproc.symbols import SymbolTable


@pytest.fixture(scope="session", autouse=True)
def maybe_profile():
    if os.environ.get("PROFILE"):
        profiler = cProfile.Profile()
        profiler.enable()
        yield
        profiler.disable()
        profiler.dump_stats("profile.stats")
    else:
        yield


@pytest.fixture
def table():
    return SymbolTable()


@pytest.fixture
def engine(table):
    return MacroEngine(symbols=table)
