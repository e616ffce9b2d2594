"""Tests for the in-process change feed."""

from unittest.mock import MagicMock

from focusflow.database.change_feed import ChangeFeed, ChangeType, TaskChange


def test_listeners_receive_changes_for_their_collection_only():
    feed = ChangeFeed()
    tasks_listener = MagicMock()
    other_listener = MagicMock()
    feed.subscribe("tasks", tasks_listener)
    feed.subscribe("notes", other_listener)

    change = TaskChange("tasks", ChangeType.CREATED, "t1")
    feed.publish(change)

    tasks_listener.assert_called_once_with(change)
    other_listener.assert_not_called()


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    listener = MagicMock()
    unsubscribe = feed.subscribe("tasks", listener)

    unsubscribe()
    unsubscribe()  # second call is harmless
    feed.publish(TaskChange("tasks", ChangeType.UPDATED, "t1"))

    listener.assert_not_called()
    assert feed.listener_count("tasks") == 0


def test_failing_listener_does_not_block_others():
    feed = ChangeFeed()
    broken = MagicMock(side_effect=RuntimeError("boom"))
    healthy = MagicMock()
    feed.subscribe("tasks", broken)
    feed.subscribe("tasks", healthy)

    feed.publish(TaskChange("tasks", ChangeType.DELETED, "t1"))

    healthy.assert_called_once()
