"""Unit tests for actor aggregation text."""

import pytest

from notify_orchestrator.batching import ActorEvent, distinct_actors, summarize_actors
from notify_orchestrator.batching.aggregation import action_text_for
from notify_orchestrator.notifications.models import Actor

pytestmark = pytest.mark.unit


class TestSummarizeActors:
    def test_one_actor(self):
        assert summarize_actors(["Jane"], "liked your post") == "Jane liked your post"

    def test_two_actors(self):
        assert (
            summarize_actors(["Jane", "Bob"], "liked your post")
            == "Jane and Bob liked your post"
        )

    def test_three_actors_uses_singular_other(self):
        assert (
            summarize_actors(["Jane", "Bob", "Ann"], "liked your post")
            == "Jane, Bob, and 1 other liked your post"
        )

    def test_five_actors(self):
        assert (
            summarize_actors(["Jane", "Bob", "Ann", "Li", "Mo"], "liked your post")
            == "Jane, Bob, and 3 others liked your post"
        )

    def test_empty_list_rejected(self):
        with pytest.raises(ValueError):
            summarize_actors([], "liked your post")


class TestDistinctActors:
    def test_first_seen_order_without_repeats(self, like_factory):
        events = [
            ActorEvent.from_request(like_factory(name))
            for name in ["Jane", "Bob", "Jane", "Ann", "Bob"]
        ]

        names = [a.name for a in distinct_actors(events)]

        assert names == ["Jane", "Bob", "Ann"]


class TestActionText:
    def test_uses_event_action_text(self, like_factory):
        events = [ActorEvent.from_request(like_factory("Jane"))]

        assert action_text_for(events) == "liked your post"

    def test_defaults_by_event_type(self, request_factory):
        request = request_factory(
            idempotency_key=None,
            event_type="follow",
            target_id="u1",
            actor=Actor(actor_id="a1", name="Jane"),
        )

        assert action_text_for([ActorEvent.from_request(request)]) == "started following you"
