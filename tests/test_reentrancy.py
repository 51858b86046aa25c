# tests/test_reentrancy.py
from sigdispatch.core.contracts import Outcome
from sigdispatch.core.dispatcher import Dispatcher

CHAIN_SRC = """
class OrderAudit:
    def on_outer(self, sender, params):
        params["log"].append("outer")
        params["nested"] = params["dispatcher"].dispatch_report("inner", "OrderAudit", params)

    def on_inner(self, sender, params):
        params["log"].append("inner-declarative")
"""


def _wire(app_root, write_receiver, receiver_entry, outer_extra=()):
    write_receiver("lib/chain.py", CHAIN_SRC)
    return Dispatcher(
        {
            "outer": [receiver_entry("on_outer", cls="OrderAudit", filename="chain.py"), *outer_extra],
            "inner": [
                receiver_entry("on_inner", cls="OrderAudit", filename="chain.py"),
                lambda s, p: p["log"].append("inner-direct"),
            ],
        },
        app_root=app_root,
    )


def test_nested_declarative_receiver_is_refused(app_root, write_receiver, receiver_entry):
    d = _wire(app_root, write_receiver, receiver_entry)
    params = {"log": [], "dispatcher": d}

    assert d.dispatch("outer", "OrderService", params) is True

    # the direct receiver still runs inside the nested call
    assert params["log"] == ["outer", "inner-direct"]
    nested = params["nested"]
    assert nested.handled is True
    assert [r.outcome for r in nested.results] == [Outcome.GUARD_HELD, Outcome.INVOKED]
    assert d.in_progress is False


def test_guard_is_not_sticky(app_root, write_receiver, receiver_entry):
    d = _wire(app_root, write_receiver, receiver_entry)
    params = {"log": [], "dispatcher": d}
    d.dispatch("outer", "OrderService", params)

    params["log"].clear()
    d.dispatch("inner", "OrderService", params)
    assert params["log"] == ["inner-declarative", "inner-direct"]


def test_direct_receiver_redispatch_bypasses_guard(app_root, write_receiver, receiver_entry):
    def relay(sender, params):
        params["log"].append("relay")
        params["relayed"] = params["dispatcher"].dispatch_report("inner", "Relay", params)

    d = Dispatcher(
        {
            "relay": relay,
            "inner": [
                receiver_entry("on_inner", cls="OrderAudit", filename="chain.py"),
                lambda s, p: p["log"].append("inner-direct"),
            ],
        },
        app_root=app_root,
    )
    write_receiver("lib/chain.py", CHAIN_SRC)
    params = {"log": [], "dispatcher": d}
    d.dispatch("relay", "OrderService", params)

    assert params["log"] == ["relay", "inner-declarative", "inner-direct"]
    assert params["relayed"].invoked == 2


def test_outer_siblings_run_after_nested_dispatch(app_root, write_receiver, receiver_entry):
    d = _wire(app_root, write_receiver, receiver_entry,
              outer_extra=[receiver_entry("on_inner", cls="OrderAudit", filename="chain.py")])
    params = {"log": [], "dispatcher": d}
    report = d.dispatch_report("outer", "OrderService", params)

    # guard released after on_outer, so the sibling declarative receiver runs
    assert params["log"] == ["outer", "inner-direct", "inner-declarative"]
    assert [r.outcome for r in report.results] == [Outcome.INVOKED, Outcome.INVOKED]
