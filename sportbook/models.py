# Standard library imports
from datetime import datetime
from typing import Optional

# Third-party imports
import sqlalchemy as sa
import sqlalchemy.orm as so
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

# Local application imports
from sportbook import db, login


class Profile(UserMixin, db.Model):
    __tablename__ = 'profiles'

    id: so.Mapped[int] = so.mapped_column(primary_key=True)
    email: so.Mapped[str] = so.mapped_column(sa.String(120), index=True, unique=True)
    name: so.Mapped[str] = so.mapped_column(sa.String(128), nullable=False)
    role: so.Mapped[str] = so.mapped_column(sa.String(16), default='user', nullable=False)  # 'user' or 'instructor'
    phone: so.Mapped[Optional[str]] = so.mapped_column(sa.String(20), nullable=True)
    avatar_url: so.Mapped[Optional[str]] = so.mapped_column(sa.String(512), nullable=True)
    password_hash: so.Mapped[Optional[str]] = so.mapped_column(sa.String(256))
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    # Instructor profile fields
    bio: so.Mapped[Optional[str]] = so.mapped_column(sa.Text, nullable=True)
    certifications: so.Mapped[Optional[list]] = so.mapped_column(sa.JSON, nullable=True)
    specialties: so.Mapped[Optional[list]] = so.mapped_column(sa.JSON, nullable=True)
    experience_years: so.Mapped[int] = so.mapped_column(sa.Integer, default=0, nullable=False)
    rating: so.Mapped[Optional[float]] = so.mapped_column(sa.Float, nullable=True)
    total_events: so.Mapped[int] = so.mapped_column(sa.Integer, default=0, nullable=False)

    # Relationships
    events: so.Mapped[list['Event']] = so.relationship('Event', back_populates='instructor')
    registrations: so.Mapped[list['EventRegistration']] = so.relationship(
        'EventRegistration', back_populates='user'
    )

    def __repr__(self):
        return f"<Profile {self.email} role={self.role}>"

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if self.password_hash is None or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_instructor(self):
        return self.role == 'instructor'


@login.user_loader
def load_user(id):
    return db.session.get(Profile, int(id))


class Event(db.Model):
    __tablename__ = 'events'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    instructor_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=False, index=True)
    title: so.Mapped[str] = so.mapped_column(sa.String(256), nullable=False)
    description: so.Mapped[Optional[str]] = so.mapped_column(sa.Text, nullable=True)
    activity_type: so.Mapped[str] = so.mapped_column(sa.String(20), nullable=False, index=True)
    difficulty: so.Mapped[str] = so.mapped_column(sa.String(20), nullable=False, index=True)
    date: so.Mapped[datetime] = so.mapped_column(sa.DateTime, nullable=False, index=True)
    duration: so.Mapped[int] = so.mapped_column(sa.Integer, nullable=False)  # Minutes
    location: so.Mapped[str] = so.mapped_column(sa.String(256), nullable=False)
    latitude: so.Mapped[float] = so.mapped_column(sa.Float, nullable=False)
    longitude: so.Mapped[float] = so.mapped_column(sa.Float, nullable=False)
    price: so.Mapped[Optional[float]] = so.mapped_column(sa.Float, nullable=True)  # None means free
    max_participants: so.Mapped[int] = so.mapped_column(sa.Integer, nullable=False)
    requirements: so.Mapped[Optional[list]] = so.mapped_column(sa.JSON, nullable=True)
    image_url: so.Mapped[Optional[str]] = so.mapped_column(sa.String(512), nullable=True)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    updated_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    instructor: so.Mapped['Profile'] = so.relationship('Profile', back_populates='events')
    registrations: so.Mapped[list['EventRegistration']] = so.relationship(
        'EventRegistration', back_populates='event', cascade='all'
    )
    ratings: so.Mapped[list['Rating']] = so.relationship(
        'Rating', back_populates='event', cascade='all'
    )
    changes: so.Mapped[list['EventChange']] = so.relationship(
        'EventChange', back_populates='event', cascade='all'
    )

    def __repr__(self):
        return f"<Event id={self.id}, title='{self.title}', type={self.activity_type}, date={self.date}>"

    @property
    def is_free(self):
        return self.price is None or self.price == 0

    def get_participant_count(self):
        """Count registrations still holding a seat"""
        return sum(1 for reg in self.registrations if reg.status != 'cancelled')

    def is_full(self):
        return self.get_participant_count() >= self.max_participants

    def get_activity_type_name(self):
        """
        Get the human-readable name for the activity type.
        """
        from flask import current_app
        activity_types = current_app.config.get('ACTIVITY_TYPES', {})
        for name, value in activity_types.items():
            if value == self.activity_type:
                return name
        return "Unknown"


class EventRegistration(db.Model):
    __tablename__ = 'event_registrations'
    __table_args__ = (
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_registration_user'),
    )

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    event_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    status: so.Mapped[str] = so.mapped_column(sa.String(16), default='confirmed', nullable=False)  # 'pending', 'confirmed', 'cancelled'
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    event: so.Mapped['Event'] = so.relationship('Event', back_populates='registrations')
    user: so.Mapped['Profile'] = so.relationship('Profile', back_populates='registrations')

    def __repr__(self):
        return f"<EventRegistration id={self.id}, event_id={self.event_id}, user_id={self.user_id}, status='{self.status}'>"


class EventMessage(db.Model):
    __tablename__ = 'event_messages'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    # Messages outlive their event so cancellation notices stay readable
    event_id: so.Mapped[Optional[int]] = so.mapped_column(sa.Integer, sa.ForeignKey('events.id', ondelete='SET NULL'), nullable=True, index=True)
    from_id: so.Mapped[Optional[int]] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=True)
    to_id: so.Mapped[Optional[int]] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=True, index=True)  # None means broadcast
    instructor_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=False)
    message: so.Mapped[str] = so.mapped_column(sa.Text, nullable=False)
    type: so.Mapped[str] = so.mapped_column(sa.String(32), default='general', nullable=False)  # 'general', 'private', 'change_notification', 'cancellation'
    status: so.Mapped[str] = so.mapped_column(sa.String(16), default='sent', nullable=False)  # 'sent', 'delivered', 'read'
    parent_id: so.Mapped[Optional[int]] = so.mapped_column(sa.Integer, sa.ForeignKey('event_messages.id'), nullable=True)
    sent_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    event: so.Mapped[Optional['Event']] = so.relationship('Event')
    instructor: so.Mapped['Profile'] = so.relationship('Profile', foreign_keys=[instructor_id])
    sender: so.Mapped[Optional['Profile']] = so.relationship('Profile', foreign_keys=[from_id])
    parent: so.Mapped[Optional['EventMessage']] = so.relationship('EventMessage', remote_side=[id])

    def __repr__(self):
        return f"<EventMessage id={self.id}, event_id={self.event_id}, type='{self.type}', status='{self.status}'>"


class EventChange(db.Model):
    __tablename__ = 'event_changes'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    event_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    instructor_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=False)
    changes: so.Mapped[dict] = so.mapped_column(sa.JSON, nullable=False)
    status: so.Mapped[str] = so.mapped_column(sa.String(16), default='pending', nullable=False)  # 'pending', 'approved', 'rejected'
    notification_sent: so.Mapped[bool] = so.mapped_column(sa.Boolean, default=False, nullable=False)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    event: so.Mapped['Event'] = so.relationship('Event', back_populates='changes')

    def __repr__(self):
        return f"<EventChange id={self.id}, event_id={self.event_id}, status='{self.status}'>"


class Rating(db.Model):
    __tablename__ = 'ratings'
    __table_args__ = (
        sa.UniqueConstraint('event_id', 'user_id', name='uq_rating_event_user'),
    )

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    event_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=False)
    instructor_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=False)
    rating: so.Mapped[int] = so.mapped_column(sa.Integer, nullable=False)  # 1-5
    comment: so.Mapped[Optional[str]] = so.mapped_column(sa.Text, nullable=True)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    event: so.Mapped['Event'] = so.relationship('Event', back_populates='ratings')
    user: so.Mapped['Profile'] = so.relationship('Profile', foreign_keys=[user_id])

    def __repr__(self):
        return f"<Rating id={self.id}, event_id={self.event_id}, rating={self.rating}>"


class EventCancellation(db.Model):
    """
    Progress record for an instructor cancelling an event.

    The cancellation runs as separate committed steps; ``step`` records the
    last one that completed so an interrupted cancellation can be resumed.
    """
    __tablename__ = 'event_cancellations'

    STEPS = ['pending', 'message_sent', 'registrations_cancelled', 'completed']

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    event_id: so.Mapped[int] = so.mapped_column(sa.Integer, nullable=False, index=True)  # Plain reference, the event row is deleted
    instructor_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('profiles.id'), nullable=False)
    message: so.Mapped[str] = so.mapped_column(sa.Text, nullable=False)
    step: so.Mapped[str] = so.mapped_column(sa.String(32), default='pending', nullable=False)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    completed_at: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)

    def __repr__(self):
        return f"<EventCancellation id={self.id}, event_id={self.event_id}, step='{self.step}'>"

    @property
    def is_complete(self):
        return self.step == 'completed'

    def has_reached(self, step):
        return self.STEPS.index(self.step) >= self.STEPS.index(step)


class ErrorLog(db.Model):
    __tablename__ = 'error_logs'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    level: so.Mapped[str] = so.mapped_column(sa.String(16), nullable=False)
    logger: so.Mapped[str] = so.mapped_column(sa.String(128), nullable=False)
    message: so.Mapped[str] = so.mapped_column(sa.Text, nullable=False)
    data: so.Mapped[Optional[str]] = so.mapped_column(sa.Text, nullable=True)  # JSON encoded
    user_id: so.Mapped[Optional[int]] = so.mapped_column(sa.Integer, nullable=True)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ErrorLog id={self.id}, level={self.level}, message='{self.message[:40]}'>"
