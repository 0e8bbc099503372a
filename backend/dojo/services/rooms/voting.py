import uuid

from .entities import ChatMessage, ProblemSuggestion, Room, RoomStatus, normalize_difficulty
from .errors import Conflict, Forbidden, NotFound


def _ensure_open(room: Room) -> None:
    if room.problem_locked:
        raise Conflict('Problem already locked')
    if room.status != RoomStatus.WAITING:
        raise Conflict('Battle already started')


def suggest(room: Room, user_id: str, username: str, url: str, slug: str,
            title: str, difficulty: str) -> ProblemSuggestion:
    """Add a candidate problem; the proposer's ballot goes to it."""
    _ensure_open(room)
    if any(s.problem_slug == slug for s in room.suggestions.values()):
        raise Conflict('This problem was already suggested')

    for s in room.suggestions.values():
        s.votes.discard(user_id)
    suggestion = ProblemSuggestion(
        id=f"sug-{uuid.uuid4().hex[:12]}",
        url=url,
        problem_slug=slug,
        problem_title=title or slug,
        difficulty=normalize_difficulty(difficulty),
        submitted_by=user_id,
        submitted_by_username=username,
        votes={user_id},
    )
    room.suggestions[suggestion.id] = suggestion
    return suggestion


def vote(room: Room, user_id: str, suggestion_id: str) -> ProblemSuggestion:
    _ensure_open(room)
    target = room.suggestions.get(suggestion_id)
    if target is None:
        raise NotFound('Suggestion not found')

    # One active ballot per voter
    for s in room.suggestions.values():
        s.votes.discard(user_id)
    target.votes.add(user_id)
    return target


def tally(room: Room):
    """Suggestion with the most votes; the earliest submitted wins ties."""
    if not room.suggestions:
        return None
    # max() keeps the first maximal element in insertion order
    return max(room.suggestions.values(), key=lambda s: len(s.votes))


def lock(room: Room, requester_id: str) -> ProblemSuggestion:
    if not room.is_host(requester_id):
        raise Forbidden('Only host can lock problem')
    if room.problem_locked:
        raise Conflict('Already locked')
    if room.status != RoomStatus.WAITING:
        raise Conflict('Battle already started')
    winner = tally(room)
    if winner is None:
        raise Conflict('No problems suggested yet')

    room.lock_problem(winner)
    room.append_chat(ChatMessage.system(
        f"Problem locked: {room.settings.problem_title or room.settings.problem_slug}"
    ))
    return winner
