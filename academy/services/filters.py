# services/filters.py
"""Query parameters for the list operations, built as data and applied to a query."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from academy.models import Schedule, Session, SessionReservation


@dataclass
class ScheduleFilters:
    group_id: Optional[str] = None
    classroom: Optional[str] = None
    day_of_week: Optional[str] = None

    def apply(self, query):
        if self.group_id:
            query = query.filter(Schedule.group_id == self.group_id)
        if self.classroom:
            query = query.filter(Schedule.classroom == self.classroom)
        if self.day_of_week:
            query = query.filter(Schedule.day_of_week == self.day_of_week)
        return query


@dataclass
class SessionFilters:
    subject_id: Optional[str] = None
    group_id: Optional[str] = None
    schedule_id: Optional[str] = None
    session_type: Optional[str] = None
    status: Optional[str] = None
    mode: Optional[str] = None
    classroom: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    descending: bool = False
    limit: Optional[int] = None

    def apply(self, query):
        if self.subject_id:
            query = query.filter(Session.subject_id == self.subject_id)
        if self.group_id:
            query = query.filter(Session.group_id == self.group_id)
        if self.schedule_id:
            query = query.filter(Session.schedule_id == self.schedule_id)
        if self.session_type:
            query = query.filter(Session.session_type == self.session_type)
        if self.status:
            query = query.filter(Session.status == self.status)
        if self.mode:
            query = query.filter(Session.mode == self.mode)
        if self.classroom:
            query = query.filter(Session.classroom == self.classroom)
        if self.date_from:
            query = query.filter(Session.date >= self.date_from)
        if self.date_to:
            query = query.filter(Session.date <= self.date_to)

        if self.descending:
            query = query.order_by(Session.date.desc(), Session.start_time.desc())
        else:
            query = query.order_by(Session.date, Session.start_time)

        if self.limit:
            query = query.limit(self.limit)
        return query


@dataclass
class ReservationFilters:
    student_id: Optional[str] = None
    session_id: Optional[str] = None
    status: Optional[str] = None
    mode: Optional[str] = None
    online_request_status: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def apply(self, query):
        if self.student_id:
            query = query.filter(SessionReservation.student_id == self.student_id)
        if self.session_id:
            query = query.filter(SessionReservation.session_id == self.session_id)
        if self.status:
            query = query.filter(SessionReservation.status == self.status)
        if self.mode:
            query = query.filter(SessionReservation.mode == self.mode)
        if self.online_request_status:
            query = query.filter(SessionReservation.online_request_status == self.online_request_status)

        if self.date_from or self.date_to:
            query = query.join(Session, Session.id == SessionReservation.session_id)
            if self.date_from:
                query = query.filter(Session.date >= self.date_from)
            if self.date_to:
                query = query.filter(Session.date <= self.date_to)
            query = query.order_by(Session.date, Session.start_time)
        else:
            query = query.order_by(SessionReservation.reserved_at)
        return query
