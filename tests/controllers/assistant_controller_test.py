from __future__ import annotations

from controllers.assistant import AssistantController
from domain.snapshots import ChatSnapshot
from services.errors import NetworkError
from tests.helpers.fake_scheduler import FakeScheduler
from tests.helpers.stubs import StubAssistant


def test_send_message_appends_question_and_answer(scheduler: FakeScheduler) -> None:
    assistant = StubAssistant(answer="A pip is the smallest price move.")
    controller = AssistantController(assistant, scheduler)
    seen: list[ChatSnapshot] = []
    controller.subscribe(seen.append)

    assert controller.send_message("What is a pip?")

    messages = controller.snapshot.messages
    assert [(message.text, message.is_user) for message in messages] == [
        ("What is a pip?", True),
        ("A pip is the smallest price move.", False),
    ]
    assert "Question: What is a pip?" in assistant.prompts[0]
    assert seen[0].is_loading
    assert not controller.snapshot.is_loading


def test_blank_message_is_ignored(scheduler: FakeScheduler) -> None:
    assistant = StubAssistant()
    controller = AssistantController(assistant, scheduler)

    assert not controller.send_message("   ")

    assert controller.snapshot.messages == ()
    assert assistant.prompts == []


def test_failure_sets_error_and_keeps_question(scheduler: FakeScheduler) -> None:
    controller = AssistantController(StubAssistant(answer=NetworkError("offline")), scheduler)

    assert not controller.send_message("Will the euro rise?")

    snapshot = controller.snapshot
    assert snapshot.error == "offline"
    assert not snapshot.is_loading
    assert len(snapshot.messages) == 1

    controller.clear_error()
    assert controller.snapshot.error is None


def test_streaming_grows_single_reply(scheduler: FakeScheduler) -> None:
    controller = AssistantController(StubAssistant(chunks=("The ", "dollar ", "is strong.")), scheduler)
    seen: list[ChatSnapshot] = []
    controller.subscribe(seen.append)

    assert controller.send_message_streaming("How is the dollar?")

    messages = controller.snapshot.messages
    assert len(messages) == 2
    assert messages[-1].text == "The dollar is strong."
    assert not messages[-1].is_user
    assert [snapshot.messages[-1].text for snapshot in seen[1:4]] == ["The ", "The dollar ", "The dollar is strong."]
    assert not controller.snapshot.is_loading


def test_pair_analysis_and_tips_are_prefixed(scheduler: FakeScheduler) -> None:
    assistant = StubAssistant(answer="Steady.")
    controller = AssistantController(assistant, scheduler)

    assert controller.analyze_currency_pair("USD", "EUR", 0.9)
    assert controller.forex_tips()

    texts = [message.text for message in controller.snapshot.messages]
    assert texts == ["Analysis for USD/EUR:\n\nSteady.", "Forex Tips:\n\nSteady."]
    assert "1 USD = 0.9 EUR" in assistant.prompts[0]


def test_clear_messages(scheduler: FakeScheduler) -> None:
    controller = AssistantController(StubAssistant(), scheduler)
    controller.send_message("hello")

    controller.clear_messages()

    assert controller.snapshot == ChatSnapshot()
