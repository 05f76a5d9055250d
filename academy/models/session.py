# models/session.py
from datetime import datetime

from sqlalchemy import Index, UniqueConstraint

from academy.extensions import db
from .base import BaseModel
from .classroom import Classroom


class SessionType:
    REGULAR = 'regular'        # generated from a schedule
    EXTRA = 'extra'            # ad-hoc for a group
    SCHEDULING = 'scheduling'  # subject-level online meeting, no group yet

    ALL = (REGULAR, EXTRA, SCHEDULING)


class SessionStatus:
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    POSTPONED = 'postponed'

    ALL = (SCHEDULED, IN_PROGRESS, COMPLETED, CANCELLED, POSTPONED)
    TERMINAL = (COMPLETED, CANCELLED, POSTPONED)


class SessionMode:
    IN_PERSON = 'in_person'
    ONLINE = 'online'
    DUAL = 'dual'

    ALL = (IN_PERSON, ONLINE, DUAL)


class Session(BaseModel):
    """A single dated class meeting."""

    __tablename__ = 'session'

    subject_id = db.Column(db.String(36), db.ForeignKey('subject.id'), nullable=False)
    group_id = db.Column(db.String(36), db.ForeignKey('subject_group.id'), nullable=True)
    schedule_id = db.Column(db.String(36), db.ForeignKey('schedule.id', ondelete='SET NULL'), nullable=True)

    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    classroom = db.Column(db.String(20), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SessionStatus.SCHEDULED)
    session_type = db.Column(db.String(20), nullable=False, default=SessionType.REGULAR)
    mode = db.Column(db.String(20), nullable=False, default=SessionMode.IN_PERSON)

    postponed_to_date = db.Column(db.Date, nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)
    topics_covered = db.Column(db.Text, nullable=True)

    subject = db.relationship('Subject')
    group = db.relationship('SubjectGroup')
    schedule = db.relationship('Schedule', back_populates='sessions')
    reservations = db.relationship('SessionReservation', back_populates='session', lazy='dynamic')

    __table_args__ = (
        # Idempotency backstop for generation
        UniqueConstraint('schedule_id', 'date', name='uq_session_schedule_date'),

        Index('idx_session_group', 'group_id'),
        Index('idx_session_subject', 'subject_id'),
        Index('idx_session_date', 'date'),
        Index('idx_session_classroom_date', 'classroom', 'date'),
        Index('idx_session_status_date', 'status', 'date'),
    )

    @property
    def is_scheduled(self):
        return self.status == SessionStatus.SCHEDULED

    @property
    def is_in_progress(self):
        return self.status == SessionStatus.IN_PROGRESS

    @property
    def is_terminal(self):
        return self.status in SessionStatus.TERMINAL

    @property
    def is_virtual(self):
        return Classroom.is_virtual(self.classroom)

    @property
    def starts_at(self):
        return datetime.combine(self.date, self.start_time)

    @property
    def ends_at(self):
        return datetime.combine(self.date, self.end_time)

    def __repr__(self):
        return f'<Session {self.date} {self.start_time}-{self.end_time} {self.classroom} ({self.status})>'
