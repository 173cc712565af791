"""Unit tests for the message models and MessageStore."""
from datetime import datetime, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from ownai.content import ContentType, classify
from ownai.memory import (
    ChangeKind,
    ChatMessage,
    ChatSession,
    MessageStore,
    Sender,
    StoreChange,
)


class TestChatMessage:
    """Tests for the ChatMessage model."""

    def test_from_user_classifies(self):
        """Test that user messages get their content type at creation."""
        message = ChatMessage.from_user("$ ls -la")
        assert message.sender == Sender.USER
        assert message.content_type == ContentType.terminal()
        assert not message.is_streaming

    def test_placeholder(self):
        """Test the empty streaming model message."""
        message = ChatMessage.placeholder()
        assert message.sender == Sender.MODEL
        assert message.content == ""
        assert message.is_streaming
        assert message.role == "assistant"

    def test_ids_unique(self):
        """Test that each message gets its own identity."""
        assert ChatMessage.placeholder().id != ChatMessage.placeholder().id

    def test_timestamp_is_timezone_aware(self):
        """Test that creation time is recorded in UTC."""
        assert ChatMessage.from_user("hi").timestamp.tzinfo is not None


class TestChatSession:
    """Tests for the ChatSession model."""

    def test_display_title_custom(self):
        """Test that a custom title wins."""
        session = ChatSession(title="Trip planning", messages=[ChatMessage.from_user("hello")])
        assert session.display_title == "Trip planning"

    def test_display_title_from_first_message(self):
        """Test that the first message's first 30 characters are used."""
        text = "Explain the difference between processes and threads"
        session = ChatSession(messages=[ChatMessage.from_user(text)])
        assert session.display_title == text[:30]

    def test_display_title_default(self):
        """Test the placeholder title for an empty session."""
        assert ChatSession().display_title == "New Chat"

    def test_settle_streaming(self):
        """Test that stale streaming flags are cleared and counted."""
        session = ChatSession(messages=[ChatMessage.from_user("hi"), ChatMessage.placeholder()])
        assert session.settle_streaming() == 1
        assert not any(m.is_streaming for m in session.messages)

    def test_duplicate_message_ids_rejected(self):
        """Test that a session cannot hold the same message id twice."""
        message = ChatMessage.from_user("hi")
        with pytest.raises(ValidationError):
            ChatSession(messages=[message, message.model_copy()])

    def test_missing_title_accepted(self):
        """Test that documents without a title load."""
        raw = '{"id": "abc", "messages": [], "created_at": "2024-05-01T10:00:00Z"}'
        session = ChatSession.model_validate_json(raw)
        assert session.title is None
        assert session.created_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


class TestMessageStore:
    """Tests for MessageStore mutations and notifications."""

    @pytest.fixture
    def store(self):
        return MessageStore()

    @pytest.fixture
    def changes(self, store):
        received: list[StoreChange] = []
        store.subscribe(received.append)
        return received

    def test_append_and_snapshot(self, store, changes):
        """Test that appended messages appear in order and notify."""
        first = ChatMessage.from_user("one")
        second = ChatMessage.placeholder()
        store.append(first)
        store.append(second)

        assert [m.id for m in store.messages] == [first.id, second.id]
        assert changes == [
            StoreChange(ChangeKind.APPENDED, first.id),
            StoreChange(ChangeKind.APPENDED, second.id),
        ]

    def test_duplicate_id_rejected(self, store):
        """Test that appending the same id twice is an error."""
        message = ChatMessage.from_user("one")
        store.append(message)
        with pytest.raises(ValueError):
            store.append(message)

    def test_snapshots_are_independent(self, store):
        """Test that mutating a snapshot does not change the store."""
        message = ChatMessage.from_user("original")
        store.append(message)
        message.content = "changed outside"
        snapshot = store.messages[0]
        snapshot.content = "changed snapshot"

        assert store.get(message.id).content == "original"

    def test_apply_delta_appends_and_reclassifies(self, store, changes):
        """Test that deltas extend content and recompute the type."""
        placeholder = ChatMessage.placeholder()
        store.append(placeholder)

        assert store.apply_delta(placeholder.id, "Here:\n```py")
        assert store.apply_delta(placeholder.id, "thon\nprint(1)\n```")

        message = store.get(placeholder.id)
        assert message.content == "Here:\n```python\nprint(1)\n```"
        assert message.content_type == ContentType.code("python")
        assert changes[-1] == StoreChange(ChangeKind.UPDATED, placeholder.id)

    def test_apply_delta_unknown_id_is_noop(self, store, changes):
        """Test that deltas for missing messages are ignored silently."""
        assert not store.apply_delta("missing", "text")
        assert changes == []

    def test_finalize_with_stats(self, store, changes):
        """Test successful completion."""
        placeholder = ChatMessage.placeholder()
        store.append(placeholder)
        store.apply_delta(placeholder.id, "Hello")

        assert store.finalize(placeholder.id, stats="Tokens: 10 | 5.0 tok/s")

        message = store.get(placeholder.id)
        assert not message.is_streaming
        assert message.content == "Hello"
        assert message.stats == "Tokens: 10 | 5.0 tok/s"
        assert changes[-1] == StoreChange(ChangeKind.FINALIZED, placeholder.id)

    def test_finalize_with_error_replaces_content(self, store):
        """Test that an error replaces partial content and clears stats."""
        placeholder = ChatMessage.placeholder()
        store.append(placeholder)
        store.apply_delta(placeholder.id, "```python\npartial")

        store.finalize(placeholder.id, error_text="out of memory")

        message = store.get(placeholder.id)
        assert message.content == "Error: out of memory"
        assert message.content_type == ContentType.text()
        assert message.stats is None
        assert not message.is_streaming

    def test_finalized_message_is_frozen(self, store):
        """Test that deltas and second finalizations are ignored."""
        placeholder = ChatMessage.placeholder()
        store.append(placeholder)
        store.apply_delta(placeholder.id, "done")
        store.finalize(placeholder.id, stats="Tokens: 1")

        assert not store.apply_delta(placeholder.id, " more")
        assert not store.finalize(placeholder.id, error_text="late failure")
        message = store.get(placeholder.id)
        assert message.content == "done"
        assert message.stats == "Tokens: 1"

    def test_finalize_unknown_id_is_noop(self, store):
        """Test that finalizing a missing message does nothing."""
        assert not store.finalize("missing", stats="x")

    def test_history_excludes_streaming(self, store):
        """Test that request history leaves out unfinished messages."""
        user = ChatMessage.from_user("hi")
        placeholder = ChatMessage.placeholder()
        store.append(user)
        store.append(placeholder)

        assert [m.id for m in store.history()] == [user.id]

    def test_unsubscribe(self, store):
        """Test that unsubscribed listeners receive nothing further."""
        received: list[StoreChange] = []
        unsubscribe = store.subscribe(received.append)
        store.append(ChatMessage.from_user("one"))
        unsubscribe()
        store.append(ChatMessage.from_user("two"))

        assert len(received) == 1

    def test_initial_messages_copied(self):
        """Test that a store built from messages does not alias them."""
        message = ChatMessage.placeholder()
        store = MessageStore([message])
        store.apply_delta(message.id, "x")

        assert message.content == ""
        assert len(store) == 1

    @given(st.lists(st.text(max_size=10), max_size=20))
    def test_deltas_concatenate_in_order(self, fragments: list[str]):
        """Property test: content equals the in-order concatenation of deltas."""
        store = MessageStore()
        placeholder = ChatMessage.placeholder()
        store.append(placeholder)
        for fragment in fragments:
            store.apply_delta(placeholder.id, fragment)
        store.finalize(placeholder.id)

        message = store.get(placeholder.id)
        assert message.content == "".join(fragments)
        assert message.content_type == classify(message.content)
