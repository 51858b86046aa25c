# tests/conftest.py
import textwrap

import pytest

from sigdispatch.core import log
from sigdispatch.core import metrics

WAREHOUSE_SRC = """
class Warehouse:
    instances = 0

    def __init__(self):
        Warehouse.instances += 1
        self.orders = []

    def notify_warehouse(self, sender, params):
        self.orders.append(params.get("id"))
        params["log"].append(("Warehouse.notify_warehouse", sender, self))

    def restock(self, sender, params):
        params["log"].append(("Warehouse.restock", sender, self))
"""


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging():
    # Setup logging (reads LOG_LEVEL / LOG_JSON / .env if available)
    log.setup()
    yield


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield


@pytest.fixture
def app_root(tmp_path):
    return tmp_path


@pytest.fixture
def write_receiver(app_root):
    def _write(relpath, source):
        p = app_root / relpath
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(textwrap.dedent(source), encoding="utf-8")
        return p
    return _write


@pytest.fixture
def warehouse(write_receiver):
    return write_receiver("lib/warehouse.py", WAREHOUSE_SRC)


def declarative(function, filename="warehouse.py", filepath="lib", cls="", sender=""):
    return {"class": cls, "function": function, "filename": filename, "filepath": filepath, "sender": sender}


@pytest.fixture
def receiver_entry():
    return declarative
