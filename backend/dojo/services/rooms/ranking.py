import math
from typing import Any, Dict, List

from .entities import Participant, Room, RoomStatus


def _rank_key(p: Participant):
    return (not p.solved, p.solve_time if p.solve_time is not None else math.inf)


def compute_rankings(room: Room) -> List[Dict[str, Any]]:
    """Standings: solvers first by ascending solve time, then everyone else.

    sorted() is stable, so unsolved participants keep join order.
    """
    ordered = sorted(room.participants.values(), key=_rank_key)
    rankings = []
    for idx, p in enumerate(ordered, start=1):
        entry = p.to_dict()
        entry['rank'] = idx
        rankings.append(entry)
    return rankings


def finish_room(room: Room, winner_id: str) -> List[Dict[str, Any]]:
    """Freeze the race: the user whose solve triggered this wins outright."""
    room.advance(RoomStatus.IN_PROGRESS)
    room.winner_id = winner_id
    return compute_rankings(room)
