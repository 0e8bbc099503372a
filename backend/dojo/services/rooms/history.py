from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from dojo import db
from dojo.models import BattleResult, BattleStanding
from .entities import Room


class BattleRecorder:
    """Writes the standings of a finished room to the battle history tables."""

    def __init__(self, app):
        self.app = app

    def __call__(self, room: Room, rankings: List[Dict[str, Any]]) -> Optional[int]:
        s = room.settings
        with self.app.app_context():
            result = BattleResult(
                room_code=room.code,
                problem_slug=s.problem_slug or None,
                problem_title=s.problem_title or None,
                difficulty=s.difficulty,
                duration=s.duration,
                is_hardcore=s.is_hardcore,
                entry_fee=s.entry_fee,
                winner_id=room.winner_id,
                started_at_ms=room.start_time,
            )
            for entry in rankings:
                result.standings.append(BattleStanding(
                    user_id=entry['userId'],
                    username=entry['username'],
                    rank=entry['rank'],
                    solved=entry['solved'],
                    solve_time_ms=entry['solveTime'],
                ))
            try:
                db.session.add(result)
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                self.app.logger.exception(f"[history-error] code={room.code} could not record battle")
                return None
            self.app.logger.info(f"[history] code={room.code} battle={result.id} winner={room.winner_id}")
            return result.id


def recent_battles(user_id: Optional[str] = None, limit: int = 20) -> List[BattleResult]:
    query = BattleResult.query
    if user_id:
        query = query.join(BattleStanding).filter(BattleStanding.user_id == user_id)
    return query.order_by(BattleResult.finished_at.desc(), BattleResult.id.desc()).limit(limit).all()
