# models/subject.py
from academy.extensions import db
from .base import BaseModel


class Subject(BaseModel):
    __tablename__ = 'subject'

    code = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(200), nullable=False)

    groups = db.relationship('SubjectGroup', back_populates='subject', lazy='dynamic')

    def __repr__(self):
        return f'<Subject {self.code}>'
