from datetime import datetime, timezone
import uuid

from flask_login import UserMixin

from quizduel import bcrypt, db


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id():
    return uuid.uuid4().hex


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def player_id(self):
        # Identity handed to the match engine; opaque string
        return str(self.id)

    def to_dict(self):
        return {
            'id': self.player_id,
            'username': self.username,
        }


class Match(db.Model):
    __tablename__ = 'match'
    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    player_one_id = db.Column(db.String(64), nullable=False, index=True)
    player_one_name = db.Column(db.String(64), nullable=False)
    player_two_id = db.Column(db.String(64), nullable=True, index=True)
    player_two_name = db.Column(db.String(64), nullable=True)
    player_one_score = db.Column(db.Integer, default=0, nullable=False)
    player_two_score = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.String(16), default='waiting', nullable=False, index=True)  # waiting, active, completed
    current_question_index = db.Column(db.Integer, default=0, nullable=False)
    # Epoch seconds; only set when the server owns the countdown
    question_deadline = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    questions = db.relationship('MatchQuestion', back_populates='match', order_by='MatchQuestion.position')


class MatchQuestion(db.Model):
    __tablename__ = 'match_question'
    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    match_id = db.Column(db.String(64), db.ForeignKey('match.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    prompt = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, nullable=False)
    correct_answer = db.Column(db.Text, nullable=False)
    answered_by = db.Column(db.String(64), nullable=True)
    answered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    match = db.relationship('Match', back_populates='questions')

    __table_args__ = (
        db.UniqueConstraint('match_id', 'position', name='uq_match_question_position'),
    )
