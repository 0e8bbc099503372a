from datetime import datetime, timezone

from dojo import db


def _utcnow():
    return datetime.now(timezone.utc)


class BattleResult(db.Model):
    __tablename__ = 'battle_result'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(8), nullable=False, index=True)
    problem_slug = db.Column(db.String(255), nullable=True)
    problem_title = db.Column(db.String(255), nullable=True)
    difficulty = db.Column(db.String(16), nullable=True)
    duration = db.Column(db.Integer, nullable=False, default=30)
    is_hardcore = db.Column(db.Boolean, default=False, nullable=False)
    entry_fee = db.Column(db.Integer, default=0, nullable=False)
    winner_id = db.Column(db.String(64), nullable=False, index=True)
    started_at_ms = db.Column(db.BigInteger, nullable=True)
    finished_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    standings = db.relationship('BattleStanding', back_populates='battle',
                                order_by='BattleStanding.rank', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'roomCode': self.room_code,
            'problemSlug': self.problem_slug,
            'problemTitle': self.problem_title,
            'difficulty': self.difficulty,
            'duration': self.duration,
            'isHardcore': self.is_hardcore,
            'entryFee': self.entry_fee,
            'winnerId': self.winner_id,
            'startTime': self.started_at_ms,
            'finishedAt': self.finished_at.isoformat() if self.finished_at else None,
            'standings': [s.to_dict() for s in self.standings],
        }


class BattleStanding(db.Model):
    __tablename__ = 'battle_standing'
    id = db.Column(db.Integer, primary_key=True)
    battle_id = db.Column(db.Integer, db.ForeignKey('battle_result.id'), nullable=False)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    rank = db.Column(db.Integer, nullable=False)
    solved = db.Column(db.Boolean, default=False, nullable=False)
    solve_time_ms = db.Column(db.Integer, nullable=True)
    battle = db.relationship('BattleResult', back_populates='standings')

    def to_dict(self):
        return {
            'userId': self.user_id,
            'username': self.username,
            'rank': self.rank,
            'solved': self.solved,
            'solveTime': self.solve_time_ms,
        }
