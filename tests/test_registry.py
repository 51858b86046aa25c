# tests/test_registry.py
import logging

import pytest

from sigdispatch.core.contracts import DeclarativeReceiver, DirectReceiver
from sigdispatch.core.registry import ReceiverRegistry, normalize_entry


def _on_save(sender, params):
    pass


class Mailer:
    def send(self, sender, params):
        pass


def test_list_of_receivers_keeps_order():
    entry = {"class": "Auth", "function": "check", "filename": "auth.py", "filepath": "libraries"}
    reg = ReceiverRegistry({"model.post_save": [entry, _on_save]})

    receivers = reg["model.post_save"]
    assert len(receivers) == 2
    assert isinstance(receivers[0], DeclarativeReceiver)
    assert receivers[0].class_name == "Auth"
    assert receivers[0].module_file_path == "libraries"
    assert isinstance(receivers[1], DirectReceiver)
    assert receivers[1].target is _on_save


def test_bare_declarative_mapping_is_one_receiver():
    entry = {"function": "email", "filename": "sender.py", "filepath": "libraries", "sender": "UserModel"}
    receivers = normalize_entry("model.post_save", entry)
    assert receivers == (DeclarativeReceiver.from_dict(entry),)
    assert receivers[0].sender_filter == "UserModel"
    assert receivers[0].class_name is None


def test_bare_callable_and_bound_pair_are_one_receiver():
    m = Mailer()
    assert normalize_entry("s", _on_save) == (DirectReceiver(_on_save),)
    (bound,) = normalize_entry("s", (m, "send"))
    assert isinstance(bound, DirectReceiver)
    assert bound.resolve() == m.send
    assert bound.name == "Mailer.send"


def test_mapping_without_function_key_is_a_sequence():
    raw = {
        "first": {"function": "a", "filename": "a.py", "filepath": "lib"},
        "second": _on_save,
    }
    receivers = normalize_entry("s", raw)
    assert [type(r) for r in receivers] == [DeclarativeReceiver, DirectReceiver]


def test_empty_strings_count_as_absent():
    d = DeclarativeReceiver.from_dict({"class": "", "function": "f", "filename": "f.py", "filepath": "lib", "sender": ""})
    assert d.class_name is None
    assert d.sender_filter is None
    assert d.name == "f"


@pytest.mark.parametrize("table", [None, "signals", 42, ["a", "b"]])
def test_non_mapping_table_gives_empty_registry(table):
    reg = ReceiverRegistry(table)
    assert len(reg) == 0
    assert reg.receivers("anything") == ()


def test_unrecognised_entries_dropped_but_signal_kept(caplog):
    with caplog.at_level(logging.WARNING, logger="sigdispatch.registry"):
        reg = ReceiverRegistry({"s": ["not a receiver", 7, _on_save]})
    assert "s" in reg
    assert reg["s"] == (DirectReceiver(_on_save),)
    assert "dropping unrecognised receiver" in caplog.text


def test_registry_is_read_only():
    reg = ReceiverRegistry({"s": _on_save})
    with pytest.raises(TypeError):
        reg["t"] = (DirectReceiver(_on_save),)
    assert reg.receiver_count == 1
