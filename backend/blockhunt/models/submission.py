from sqlalchemy import Index, func
from ..extensions import db
from .enums import BigIntPK, submission_status_enum


class Submission(db.Model):
    __tablename__ = "submissions"

    id = db.Column(BigIntPK, primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id = db.Column(db.String(80), db.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    code = db.Column(db.Text, nullable=False)
    workspace_state = db.Column(db.JSON)
    status = db.Column(submission_status_enum, nullable=False, server_default="pending")
    grade = db.Column(db.String(20))
    score = db.Column(db.Integer)
    feedback = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    graded_at = db.Column(db.DateTime(timezone=True))

    user = db.relationship("User", back_populates="submissions", foreign_keys=[user_id])
    question = db.relationship("Question", back_populates="submissions")

    __table_args__ = (
        Index("idx_submissions_status_submitted", "status", "submitted_at"),
        Index("idx_submissions_user", "user_id"),
    )
