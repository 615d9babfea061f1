"""Actor aggregation: collapse many event originators into one phrase."""

from typing import Dict, Iterable, List

from notify_orchestrator.batching.models import ActorEvent
from notify_orchestrator.notifications.models import Actor

DEFAULT_ACTION_TEXT: Dict[str, str] = {
    "like": "liked your post",
    "comment": "commented on your post",
    "follow": "started following you",
    "mention": "mentioned you",
    "low_priority_alert": "raised an alert",
}


def distinct_actors(events: Iterable[ActorEvent]) -> List[Actor]:
    """Actors in first-seen order, one entry per actor_id."""
    seen = set()
    actors = []
    for event in events:
        if event.actor.actor_id in seen:
            continue
        seen.add(event.actor.actor_id)
        actors.append(event.actor)
    return actors


def summarize_actors(names: List[str], action_text: str) -> str:
    """Render the summary sentence.

    >>> summarize_actors(["Jane"], "liked your post")
    'Jane liked your post'
    >>> summarize_actors(["Jane", "Bob"], "liked your post")
    'Jane and Bob liked your post'
    >>> summarize_actors(["Jane", "Bob", "Ann", "Li", "Mo"], "liked your post")
    'Jane, Bob, and 3 others liked your post'
    """
    if not names:
        raise ValueError("Cannot summarize an empty actor list")
    if len(names) == 1:
        subject = names[0]
    elif len(names) == 2:
        subject = f"{names[0]} and {names[1]}"
    else:
        others = len(names) - 2
        noun = "other" if others == 1 else "others"
        subject = f"{names[0]}, {names[1]}, and {others} {noun}"
    return f"{subject} {action_text}"


def action_text_for(events: List[ActorEvent]) -> str:
    for event in events:
        if event.action_text:
            return event.action_text
    event_type = events[0].event_type
    return DEFAULT_ACTION_TEXT.get(event_type, f"sent you a {event_type}")
