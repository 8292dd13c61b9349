import pytest

from soapkit.abbrev import AbbreviationTable
from soapkit.buffers import BufferPositionError, DeferredQueue, TextBuffer, handle_key
from soapkit.expansion import ExpansionEngine

ENGINE = ExpansionEngine(AbbreviationTable({"cd": "2024-01-01"}), builtins=False)


def press(buf, key, loop):
    """Simulate a widget key press: run the hook, then the default insertion if not suppressed."""
    suppressed = handle_key(buf, key, ENGINE, loop.call_soon)
    if not suppressed and key == "space":
        buf.type(" ")
    return suppressed


def test_space_after_abbreviation_expands_on_next_turn():
    buf = TextBuffer("Onset :cd")
    loop = DeferredQueue()

    assert press(buf, "space", loop) is True
    # Nothing changes inside the key handler
    assert buf.text == "Onset :cd"
    assert len(loop) == 1

    loop.run_pending()
    assert buf.text == "Onset 2024-01-01 "
    assert buf.caret == len(buf.text)


def test_space_is_not_inserted_twice():
    buf = TextBuffer("Onset :cd")
    loop = DeferredQueue()
    press(buf, "space", loop)
    loop.run_pending()
    assert buf.text.endswith("01 ")
    assert not buf.text.endswith("  ")


def test_plain_word_gets_normal_space():
    buf = TextBuffer("plain text")
    loop = DeferredQueue()
    assert press(buf, "space", loop) is False
    assert len(loop) == 0
    assert buf.text == "plain text "


def test_other_keys_are_ignored():
    buf = TextBuffer("Onset :cd")
    loop = DeferredQueue()
    assert handle_key(buf, "a", ENGINE, loop.call_soon) is False
    assert len(loop) == 0


def test_second_space_after_expansion_does_nothing_special():
    buf = TextBuffer("Onset :cd")
    loop = DeferredQueue()
    press(buf, "space", loop)
    loop.run_pending()
    assert press(buf, "space", loop) is False
    assert buf.text == "Onset 2024-01-01  "


def test_single_change_notification_per_expansion():
    buf = TextBuffer("Onset :cd")
    seen = []
    buf.on_change.append(seen.append)
    loop = DeferredQueue()
    press(buf, "space", loop)
    loop.run_pending()
    assert seen == ["Onset 2024-01-01 "]


def test_caret_in_middle_of_buffer():
    buf = TextBuffer("a :cd tail", caret=5)
    loop = DeferredQueue()
    assert press(buf, "space", loop) is True
    loop.run_pending()
    assert buf.text == "a 2024-01-01  tail"
    assert buf.caret == len("a 2024-01-01 ")


def test_stale_span_is_dropped_silently():
    buf = TextBuffer("Onset :cd")
    loop = DeferredQueue()
    press(buf, "space", loop)
    # Buffer shrinks before the deferred edit runs
    buf.text = "On"
    buf.caret = 2
    loop.run_pending()
    assert buf.text == "On"


def test_text_buffer_rejects_bad_span():
    buf = TextBuffer("abc")
    with pytest.raises(BufferPositionError):
        buf.replace(2, 10, "x")
    with pytest.raises(IndexError):
        buf.replace(2, 1, "x")


def test_deferred_queue_defers_callbacks_queued_while_running():
    loop = DeferredQueue()
    calls = []
    loop.call_soon(lambda: loop.call_soon(lambda: calls.append("second")))
    assert loop.run_pending() == 1
    assert calls == []
    assert loop.run_pending() == 1
    assert calls == ["second"]


def test_current_date_token_needs_table_entry_when_typing():
    engine = ExpansionEngine(AbbreviationTable({"htn": "hypertension"}))
    buf = TextBuffer("Onset :cd")
    loop = DeferredQueue()
    assert handle_key(buf, "space", engine, loop.call_soon) is False
    assert len(loop) == 0
    assert buf.text == "Onset :cd"
