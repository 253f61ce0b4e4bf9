import pytest

from session import (
    InputMode,
    MissingSessionValue,
    QuerySession,
    SessionContext,
    SessionStore,
    UnknownSession,
)
from utils.narration import BrowserSpeechSynthesizer, SummaryNarrator


def test_toggle_starts_and_cancels_speech():
    synth = BrowserSpeechSynthesizer()
    narrator = SummaryNarrator(synth)

    assert narrator.toggle("Two customers found.") is True
    assert narrator.is_speaking
    assert synth.drain() == [{"action": "speak", "text": "Two customers found."}]

    # zweiter Klick bricht ab statt neu einzureihen
    assert narrator.toggle("Two customers found.") is False
    assert not narrator.is_speaking
    assert synth.drain() == [{"action": "cancel"}]


def test_end_and_error_callbacks_reset_state():
    synth = BrowserSpeechSynthesizer()
    narrator = SummaryNarrator(synth)

    narrator.toggle("summary")
    synth.notify_end()
    assert not narrator.is_speaking

    narrator.toggle("summary")
    synth.notify_error("interrupted")
    assert not narrator.is_speaking
    assert narrator.last_error == "interrupted"


def test_close_cancels_only_when_speaking():
    synth = BrowserSpeechSynthesizer()
    narrator = SummaryNarrator(synth)
    narrator.close()
    assert synth.drain() == []

    narrator.toggle("summary")
    synth.drain()
    narrator.close()
    assert synth.drain() == [{"action": "cancel"}]


def test_unsupported_platform():
    narrator = SummaryNarrator(None)
    assert not narrator.supported
    assert narrator.toggle("summary") is False


def test_session_context_requires_known_keys():
    context = SessionContext()
    context.put(SessionContext.EXTRACTED_TEXT, "hello")
    assert context.require(SessionContext.EXTRACTED_TEXT) == "hello"

    with pytest.raises(MissingSessionValue):
        context.require(SessionContext.ANALYZED_FILE_NAME)
    with pytest.raises(ValueError):
        context.put("somethingElse", 1)


def test_query_session_reset():
    query = QuerySession(input_mode=InputMode.TEXT, natural_language="q", results=[{"a": 1}])
    assert query.has_results
    query.reset()
    assert query.input_mode is None
    assert query.results is None
    assert not query.has_results


def test_session_store_lifecycle():
    store = SessionStore(maxsize=4, ttl=60)
    session_id = store.create()
    state = store.get(session_id)
    state.context.put(SessionContext.TABLE_SCHEMA, "Table: t")

    other = store.get(store.create())
    assert other.context.get(SessionContext.TABLE_SCHEMA) is None

    store.discard(session_id)
    with pytest.raises(UnknownSession):
        store.get(session_id)
