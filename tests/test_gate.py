from __future__ import annotations

import asyncio

import pytest
from conftest import FakeSubmitter, valid_hotel

from backoffice.engine import FormSession
from backoffice.gate import CloseChoice, CloseGate


@pytest.fixture()
def closed():
    return []


@pytest.fixture()
def gate(session, closed):
    return CloseGate(session, on_close=lambda: closed.append(True))


def _toasts(session):
    return [(t.level, t.message) for t in session.notifier.drain()]


def test_dirty_add_form_offers_draft_choices(session, gate, closed):
    session.initialize("add")
    session.set_field("name", "Azure Bay")

    prompt = gate.request_close()

    assert prompt.has_unsaved_changes
    assert prompt.choices == [CloseChoice.CONTINUE, CloseChoice.SAVE_DRAFT, CloseChoice.DISCARD]
    assert gate.resolve("continue") is False
    assert closed == []
    assert not session.state.closed


def test_save_draft_then_close(session, gate, closed, store):
    session.initialize("add")
    session.set_field("name", "Azure Bay")
    gate.request_close()

    assert gate.resolve(CloseChoice.SAVE_DRAFT) is True

    assert store.load().document["name"] == "Azure Bay"
    assert closed == [True]
    assert session.state.closed
    assert _toasts(session) == [("success", "Hotel draft saved successfully")]


def test_save_draft_failure_keeps_form_open(session, gate, closed, store):
    session.initialize("add")
    session.set_field("name", "Az")
    gate.request_close()

    assert gate.resolve(CloseChoice.SAVE_DRAFT) is False

    assert closed == []
    assert store.load() is None
    assert _toasts(session) == [("error", "Failed to save hotel draft")]


def test_discard_clears_draft_and_resets_form(session, gate, closed, store, hotel_schema):
    session.initialize("add")
    session.set_field("name", "Azure Bay")
    session.go_to_step(2)
    store.save(session.state.document)
    gate.request_close()

    assert gate.resolve("discard") is True

    assert store.load() is None
    assert session.state.document == hotel_schema.template
    assert session.state.current_step == 0
    assert closed == [True]
    assert _toasts(session) == [("info", "Hotel changes discarded")]


def test_clean_add_close_clears_stale_draft(session, gate, store, hotel_schema):
    session.initialize("add")
    stale = hotel_schema.empty_document()
    stale["name"] = "Old Draft"
    store.save(stale)

    prompt = gate.request_close()
    assert not prompt.has_unsaved_changes
    assert prompt.choices == [CloseChoice.CONTINUE, CloseChoice.CLOSE]

    assert gate.resolve("close") is True
    assert store.load() is None


def test_edit_mode_close(session, gate, closed, store):
    session.initialize("edit", valid_hotel())
    assert gate.request_close().has_unsaved_changes is False

    session.set_field("name", "Renamed")
    prompt = gate.request_close()
    assert prompt.has_unsaved_changes
    assert prompt.choices == [CloseChoice.CONTINUE, CloseChoice.CLOSE]

    with pytest.raises(ValueError):
        gate.resolve("save_draft")
    assert gate.resolve("close") is True
    assert closed == [True]
    assert store.load() is None


def test_close_ignored_while_submitting(session, gate):
    session.initialize("add")
    session.state.is_submitting = True
    assert gate.request_close() is None


def test_resolve_without_prompt(session, gate):
    session.initialize("add")
    with pytest.raises(ValueError):
        gate.resolve("close")


def test_close_choice_held_until_submission_finishes(hotel_schema, store, autosave, closed):
    session = FormSession(hotel_schema, store, FakeSubmitter(delay=0.05), autosave=autosave)
    gate = CloseGate(session, on_close=lambda: closed.append(True))
    session.initialize("add")
    session.state.document = valid_hotel()
    assert gate.request_close().choices[-1] is CloseChoice.DISCARD

    async def scenario():
        task = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        assert session.state.is_submitting
        assert gate.resolve("discard") is False
        return await task

    assert asyncio.run(scenario()) is True
    assert closed == []
    assert not session.state.closed
    assert gate.prompt is not None

    assert gate.resolve("discard") is True
    assert closed == [True]
