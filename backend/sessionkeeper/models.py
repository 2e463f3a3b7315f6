from sessionkeeper import db, bcrypt
from sessionkeeper.zones import DEFAULT_ZONE
from flask_login import UserMixin
from datetime import datetime, timezone
import json


def utcnow() -> datetime:
    # Naive UTC so values compare cleanly with what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Campaign(db.Model):
    __tablename__ = 'campaign'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    memberships = db.relationship('CampaignMembership', back_populates='campaign', cascade='all, delete-orphan')
    characters = db.relationship('Character', back_populates='campaign', cascade='all, delete-orphan')
    sessions = db.relationship('PlaySession', back_populates='campaign', cascade='all, delete-orphan',
                               order_by='PlaySession.session_number')

    def member_user_ids(self) -> list[int]:
        return [m.user_id for m in self.memberships]

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'owner_id': self.owner_id,
            'created_at': _isoformat(self.created_at),
        }


class CampaignMembership(db.Model):
    __tablename__ = 'campaign_membership'
    __table_args__ = (db.UniqueConstraint('user_id', 'campaign_id', name='uq_membership_user_campaign'),)
    ADMIN = 'ADMIN'
    MEMBER = 'MEMBER'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaign.id'), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False, default=MEMBER)
    campaign = db.relationship('Campaign', back_populates='memberships')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'campaign_id': self.campaign_id,
            'role': self.role,
        }


class Character(db.Model):
    __tablename__ = 'character'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaign.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    # Proximity tier; NULL means the character has never been placed
    current_zone = db.Column(db.String(16), nullable=True)
    zone_metadata = db.Column(db.JSON, nullable=True)
    campaign = db.relationship('Campaign', back_populates='characters')

    @property
    def zone(self) -> str:
        return self.current_zone or DEFAULT_ZONE.value

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'campaign_id': self.campaign_id,
            'user_id': self.user_id,
            'zone': self.zone,
        }


class PlaySession(db.Model):
    __tablename__ = 'play_session'
    PENDING = 'PENDING'
    ACTIVE = 'ACTIVE'
    ENDED = 'ENDED'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaign.id'), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    session_number = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=PENDING)
    # Summary, written once when the session ends
    experience_awarded = db.Column(db.Integer, nullable=True)
    gold_awarded = db.Column(db.Integer, nullable=True)
    items_awarded = db.Column(db.Text, nullable=True)  # JSON-encoded list of item references
    summary_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    started_at = db.Column(db.DateTime, nullable=True)
    ended_at = db.Column(db.DateTime, nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=True)
    campaign = db.relationship('Campaign', back_populates='sessions')
    notes = db.relationship('SessionNote', back_populates='session', cascade='all, delete-orphan',
                            order_by='SessionNote.id')
    # Written once, in the same transaction that starts the session
    participant_rows = db.relationship('SessionParticipant', back_populates='session',
                                       cascade='all, delete-orphan', order_by='SessionParticipant.id')

    @property
    def participants(self) -> list[int]:
        return [p.character_id for p in self.participant_rows]

    @property
    def items(self) -> list[str] | None:
        return json.loads(self.items_awarded) if self.items_awarded is not None else None

    def to_dict(self, include_notes=False):
        data = {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'name': self.name,
            'description': self.description,
            'session_number': self.session_number,
            'status': self.status,
            'participants': self.participants,
            'participant_details': [p.to_dict() for p in self.participant_rows],
            'experience_awarded': self.experience_awarded,
            'gold_awarded': self.gold_awarded,
            'items_awarded': self.items,
            'summary_notes': self.summary_notes,
            'created_at': _isoformat(self.created_at),
            'started_at': _isoformat(self.started_at),
            'ended_at': _isoformat(self.ended_at),
            'duration_minutes': self.duration_minutes,
        }
        if include_notes:
            data['notes'] = [n.to_dict() for n in self.notes]
        return data


class SessionParticipant(db.Model):
    __tablename__ = 'session_participant'
    PRESENT = 'PRESENT'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('play_session.id'), nullable=False, index=True)
    character_id = db.Column(db.Integer, db.ForeignKey('character.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    attendance_status = db.Column(db.String(16), nullable=False, default=PRESENT)
    joined_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    left_at = db.Column(db.DateTime, nullable=True)
    actions_count = db.Column(db.Integer, nullable=False, default=0)
    messages_count = db.Column(db.Integer, nullable=False, default=0)
    session = db.relationship('PlaySession', back_populates='participant_rows')

    __table_args__ = (
        db.UniqueConstraint('session_id', 'character_id', name='uq_participant_session_character'),
    )

    def to_dict(self):
        return {
            'character_id': self.character_id,
            'user_id': self.user_id,
            'attendance_status': self.attendance_status,
            'joined_at': _isoformat(self.joined_at),
            'left_at': _isoformat(self.left_at),
            'actions_count': self.actions_count,
            'messages_count': self.messages_count,
        }


class SessionNote(db.Model):
    __tablename__ = 'session_note'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('play_session.id'), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    note_type = db.Column(db.String(32), nullable=False, default='general')
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    session = db.relationship('PlaySession', back_populates='notes')

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'author_id': self.author_id,
            'content': self.content,
            'note_type': self.note_type,
            'is_public': self.is_public,
            'created_at': _isoformat(self.created_at),
        }


class Notification(db.Model):
    __tablename__ = 'notification'
    UNREAD = 'UNREAD'
    READ = 'READ'
    DISMISSED = 'DISMISSED'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaign.id'), nullable=True, index=True)
    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(128), nullable=False)
    message = db.Column(db.Text, nullable=False)
    payload = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=UNREAD)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    read_at = db.Column(db.DateTime, nullable=True)
    dismissed_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'campaign_id': self.campaign_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'metadata': self.payload or {},
            'status': self.status,
            'created_at': _isoformat(self.created_at),
            'read_at': _isoformat(self.read_at),
            'dismissed_at': _isoformat(self.dismissed_at),
        }
