# models/group.py
from flask import current_app, has_app_context
from sqlalchemy import Index

from academy.extensions import db
from .base import BaseModel


class GroupType:
    REGULAR_Q1 = 'regular_q1'
    INTENSIVE_Q1 = 'intensive_q1'
    REGULAR_Q2 = 'regular_q2'
    INTENSIVE_Q2 = 'intensive_q2'

    ALL = (REGULAR_Q1, INTENSIVE_Q1, REGULAR_Q2, INTENSIVE_Q2)
    INTENSIVE = (INTENSIVE_Q1, INTENSIVE_Q2)

    @classmethod
    def is_intensive(cls, value):
        return value in cls.INTENSIVE


class GroupStatus:
    OPEN = 'open'
    CLOSED = 'closed'
    CANCELLED = 'cancelled'


class SubjectGroup(BaseModel):
    __tablename__ = 'subject_group'

    subject_id = db.Column(db.String(36), db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    group_type = db.Column(db.String(20), nullable=False, default=GroupType.REGULAR_Q1)
    status = db.Column(db.String(20), nullable=False, default=GroupStatus.OPEN)
    capacity = db.Column(db.Integer, nullable=True)  # overrides the type default

    subject = db.relationship('Subject', back_populates='groups')
    teacher = db.relationship('User', foreign_keys=[teacher_id])
    schedules = db.relationship('Schedule', back_populates='group', lazy='dynamic')
    enrollments = db.relationship('Enrollment', back_populates='group', lazy='dynamic')

    __table_args__ = (
        Index('idx_group_subject', 'subject_id'),
        Index('idx_group_teacher', 'teacher_id'),
        Index('idx_group_status', 'status'),
    )

    @property
    def is_intensive(self):
        return GroupType.is_intensive(self.group_type)

    @property
    def is_cancelled(self):
        return self.status == GroupStatus.CANCELLED

    @property
    def max_capacity(self):
        """Custom capacity when set, otherwise the default for the group type."""
        if self.capacity is not None:
            return self.capacity

        regular, intensive = 24, 50
        if has_app_context():
            regular = current_app.config.get('REGULAR_GROUP_CAPACITY', regular)
            intensive = current_app.config.get('INTENSIVE_GROUP_CAPACITY', intensive)
        return intensive if self.is_intensive else regular

    @property
    def enrollment_count(self):
        """Number of active enrollments, always computed from the enrollment table."""
        from .enrollment import Enrollment, EnrollmentStatus
        return Enrollment.query.filter_by(group_id=self.id, status=EnrollmentStatus.ACTIVE).count()

    @property
    def available_seats(self):
        return max(0, self.max_capacity - self.enrollment_count)

    def __repr__(self):
        return f'<SubjectGroup {self.id} {self.group_type} ({self.status})>'
