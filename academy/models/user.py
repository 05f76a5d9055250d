# models/user.py
from flask_login import UserMixin
from sqlalchemy import Index

from academy.extensions import db
from .base import BaseModel


class RoleType:
    """Define role types as constants."""
    ADMIN = 'admin'
    TEACHER = 'teacher'
    STUDENT = 'student'

    ALL = (ADMIN, TEACHER, STUDENT)


class User(UserMixin, BaseModel):
    """Directory entry for admins, teachers and students."""

    __tablename__ = 'users'

    email = db.Column(db.String(120), unique=True, nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=RoleType.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        Index('idx_user_role', 'role'),
    )

    def has_role(self, role_name):
        return self.role == role_name

    def is_admin(self):
        return self.role == RoleType.ADMIN

    def is_teacher(self):
        return self.role == RoleType.TEACHER

    def is_student(self):
        return self.role == RoleType.STUDENT

    def is_staff(self):
        return self.role in (RoleType.ADMIN, RoleType.TEACHER)

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'
