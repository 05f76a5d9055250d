# models/enrollment.py
from datetime import datetime

from sqlalchemy import Index

from academy.extensions import db
from .base import BaseModel


class EnrollmentStatus:
    """Enrollment status constants."""
    ACTIVE = 'active'
    WAITING_LIST = 'waiting_list'
    PENDING_APPROVAL = 'pending_approval'
    WITHDRAWN = 'withdrawn'
    COMPLETED = 'completed'


class Enrollment(BaseModel):
    """A student's membership in a subject group."""

    __tablename__ = 'enrollment'

    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    group_id = db.Column(db.String(36), db.ForeignKey('subject_group.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=EnrollmentStatus.ACTIVE)
    enrolled_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    student = db.relationship('User', foreign_keys=[student_id])
    group = db.relationship('SubjectGroup', back_populates='enrollments')

    __table_args__ = (
        Index('idx_enrollment_student', 'student_id'),
        Index('idx_enrollment_group_status', 'group_id', 'status'),
    )

    @property
    def is_active(self):
        return self.status == EnrollmentStatus.ACTIVE

    def __repr__(self):
        return f'<Enrollment {self.student_id} -> {self.group_id} ({self.status})>'
