"""Tests for the activity message buffers."""
from snapsolve.core.message_system import MessageCategory, MessageLevel, MessageManager


def test_messages_are_copied_into_main():
    manager = MessageManager()
    manager.add_message("Captured screenshot", category=MessageCategory.SCREENSHOT, buffer_name="screenshot")
    manager.add_message("Server started")

    assert [m.content for m in manager.get_messages("screenshot")] == ["Captured screenshot"]
    assert [m.content for m in manager.get_messages("main")] == ["Captured screenshot", "Server started"]


def test_buffer_is_bounded():
    manager = MessageManager(max_size=2)
    for i in range(3):
        manager.add_message(f"message {i}")
    assert [m.content for m in manager.get_messages("main")] == ["message 1", "message 2"]


def test_ui_format():
    manager = MessageManager()
    manager.add_message("Solution generated", level=MessageLevel.CODESOLUTION,
                        category=MessageCategory.PROCESSING, source="orchestrator", buffer_name="processing")

    entry, = manager.get_formatted_messages("processing")
    assert entry["content"] == "Solution generated"
    assert entry["level"] == "codeSolution"
    assert entry["category"] == "processing"
    assert entry["source"] == "orchestrator"
    assert entry["emoji"] == "✨"


def test_deleted_screenshot_entry_uses_bin_emoji():
    manager = MessageManager()
    manager.add_message("Screenshot deleted", category=MessageCategory.SCREENSHOT, buffer_name="screenshot")
    manager.add_message("Captured primary screenshot #1", category=MessageCategory.SCREENSHOT)

    deleted, captured = manager.get_formatted_messages("main")
    assert deleted["emoji"] == "🗑️"
    assert captured["emoji"] == "📸"
    assert deleted["timestamp"].count(":") == 2


def test_unknown_buffer_is_empty():
    manager = MessageManager()
    manager.add_message("goes to main only", buffer_name="nope")
    assert manager.get_messages("nope") == []
    assert manager.get_formatted_messages("nope") == []
    assert len(manager.get_messages("main")) == 1
