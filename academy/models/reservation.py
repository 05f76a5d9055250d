# models/reservation.py
from datetime import datetime

from sqlalchemy import Index, UniqueConstraint

from academy.extensions import db
from .base import BaseModel


class ReservationStatus:
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'


class ReservationMode:
    IN_PERSON = 'in_person'
    ONLINE = 'online'

    ALL = (IN_PERSON, ONLINE)


class OnlineRequestStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class AttendanceStatus:
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'
    EXCUSED = 'excused'

    ALL = (PRESENT, ABSENT, LATE, EXCUSED)


class SessionReservation(BaseModel):
    """One student's seat claim for one session."""

    __tablename__ = 'session_reservation'

    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    session_id = db.Column(db.String(36), db.ForeignKey('session.id'), nullable=False)
    enrollment_id = db.Column(db.String(36), db.ForeignKey('enrollment.id'), nullable=False)

    mode = db.Column(db.String(20), nullable=False, default=ReservationMode.IN_PERSON)
    status = db.Column(db.String(20), nullable=False, default=ReservationStatus.CONFIRMED)
    reserved_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    # Online attendance request workflow
    online_request_status = db.Column(db.String(20), nullable=True)
    online_requested_at = db.Column(db.DateTime, nullable=True)
    online_request_processed_at = db.Column(db.DateTime, nullable=True)
    online_request_processed_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)

    # Attendance
    attendance_status = db.Column(db.String(20), nullable=True)
    attendance_recorded_at = db.Column(db.DateTime, nullable=True)
    attendance_recorded_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)

    student = db.relationship('User', foreign_keys=[student_id])
    session = db.relationship('Session', back_populates='reservations')
    enrollment = db.relationship('Enrollment')

    __table_args__ = (
        UniqueConstraint('student_id', 'session_id', name='uq_reservation_student_session'),
        Index('idx_reservation_session', 'session_id'),
        Index('idx_reservation_student', 'student_id'),
        Index('idx_reservation_session_status_mode', 'session_id', 'status', 'mode'),
        Index('idx_reservation_online_pending', 'online_request_status',
              postgresql_where=db.text("online_request_status = 'pending'")),
    )

    def approve_online_request(self, processed_by_id):
        """Approve the request; the seat is released by switching to online."""
        self.online_request_status = OnlineRequestStatus.APPROVED
        self.online_request_processed_at = datetime.now()
        self.online_request_processed_by_id = processed_by_id
        self.mode = ReservationMode.ONLINE
        return self

    def reject_online_request(self, processed_by_id):
        self.online_request_status = OnlineRequestStatus.REJECTED
        self.online_request_processed_at = datetime.now()
        self.online_request_processed_by_id = processed_by_id
        return self

    def cancel(self):
        self.status = ReservationStatus.CANCELLED
        self.cancelled_at = datetime.now()
        return self

    @property
    def is_confirmed(self):
        return self.status == ReservationStatus.CONFIRMED

    @property
    def is_in_person(self):
        return self.mode == ReservationMode.IN_PERSON

    @property
    def has_attendance(self):
        return self.attendance_status is not None

    @property
    def has_online_request(self):
        return self.online_request_status is not None

    @property
    def is_online_request_pending(self):
        return self.online_request_status == OnlineRequestStatus.PENDING

    def __repr__(self):
        return f'<SessionReservation {self.student_id} @ {self.session_id} ({self.status}/{self.mode})>'
