from sqlalchemy import func
from ..extensions import db


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.String(80), primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    difficulty = db.Column(db.String(40))
    tags = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    is_built_in = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    submissions = db.relationship("Submission", back_populates="question", lazy=True, cascade="all, delete-orphan")
