# models/schedule.py
from sqlalchemy import Index

from academy.extensions import db
from .base import BaseModel
from .classroom import Classroom


class Schedule(BaseModel):
    """Recurring weekly slot of a group in a classroom."""

    __tablename__ = 'schedule'

    group_id = db.Column(db.String(36), db.ForeignKey('subject_group.id'), nullable=False)
    day_of_week = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    classroom = db.Column(db.String(20), nullable=False)

    group = db.relationship('SubjectGroup', back_populates='schedules')
    sessions = db.relationship('Session', back_populates='schedule', lazy='dynamic')

    __table_args__ = (
        Index('idx_schedule_group', 'group_id'),
        Index('idx_schedule_classroom_day', 'classroom', 'day_of_week'),
        Index('idx_schedule_day', 'day_of_week'),

        # Storage backstop against two physical-room bookings starting together
        Index('uq_schedule_classroom_slot', 'classroom', 'day_of_week', 'start_time',
              unique=True,
              postgresql_where=db.text(f"classroom <> '{Classroom.AULA_VIRTUAL}'"),
              sqlite_where=db.text(f"classroom <> '{Classroom.AULA_VIRTUAL}'")),
    )

    @property
    def is_virtual(self):
        return Classroom.is_virtual(self.classroom)

    def __repr__(self):
        return f'<Schedule {self.day_of_week} {self.start_time}-{self.end_time} {self.classroom}>'
