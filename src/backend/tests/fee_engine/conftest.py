import os
import sys

import pytest


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from common.fee_engine.context import ExecutionContext  # noqa: E402
from common.fee_engine.engine import FeeEngine  # noqa: E402


@pytest.fixture
def make_ctx():
    def _make(vars=None, *, fee_items=None, enable_log: bool = False) -> ExecutionContext:
        return ExecutionContext(vars or {}, fee_items, enable_log=enable_log)

    return _make


@pytest.fixture
def make_engine(make_ctx):
    def _make(vars=None, *, rules=(), enable_log: bool = False, settings=None) -> FeeEngine:
        engine = FeeEngine(make_ctx(vars, enable_log=enable_log), settings=settings)
        return engine.queue(*rules)

    return _make
