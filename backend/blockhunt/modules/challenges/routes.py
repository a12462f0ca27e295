from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, g
from marshmallow import ValidationError

from ...extensions import db
from ...models.question import Question
from ...models.submission import Submission
from ...schemas.challenge import GradeSchema, QuestionSchema, SubmissionSchema

logger = logging.getLogger(__name__)

questions_bp = Blueprint("questions", __name__, url_prefix="/questions")
submissions_bp = Blueprint("submissions", __name__, url_prefix="/submissions")


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _session():
    return getattr(g, "session", None)


def _is_admin() -> bool:
    sess = _session()
    return bool(sess and sess.is_admin)


def _question_to_dict(q: Question) -> dict:
    return {
        "id": q.id,
        "title": q.title,
        "description": q.description,
        "difficulty": q.difficulty,
        "tags": list(q.tags or []),
        "isActive": bool(q.is_active),
        "isBuiltIn": bool(q.is_built_in),
        "createdAt": q.created_at.isoformat() if q.created_at else None,
        "updatedAt": q.updated_at.isoformat() if q.updated_at else None,
    }


def _submission_to_dict(s: Submission) -> dict:
    return {
        "id": s.id,
        "userId": s.user_id,
        "questionId": s.question_id,
        "code": s.code,
        "workspaceState": s.workspace_state,
        "status": s.status,
        "grade": s.grade,
        "score": s.score,
        "feedback": s.feedback,
        "submittedAt": s.submitted_at.isoformat() if s.submitted_at else None,
        "gradedAt": s.graded_at.isoformat() if s.graded_at else None,
    }


# ---------------------------------------------------------------- questions

@questions_bp.get("")
def list_questions():
    """Active questions for students; admins see all with ``?all=1``."""
    q = Question.query
    if not (_is_admin() and request.args.get("all") == "1"):
        q = q.filter(Question.is_active.is_(True))
    rows = q.order_by(Question.created_at.asc(), Question.id.asc()).all()
    return jsonify({"questions": [_question_to_dict(r) for r in rows]})


@questions_bp.post("")
def create_question():
    if not _is_admin():
        return _json_error("Admin access required", 403)
    try:
        data = QuestionSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Invalid question", "details": e.messages}), 400
    if db.session.get(Question, data["id"]):
        return _json_error("Question id already exists", 409)
    row = Question(
        id=data["id"],
        title=data["title"].strip(),
        description=data.get("description"),
        difficulty=data.get("difficulty"),
        tags=data.get("tags") or [],
        is_active=data["is_active"],
        is_built_in=False,
    )
    db.session.add(row)
    db.session.commit()
    return jsonify({"question": _question_to_dict(row)}), 201


@questions_bp.patch("/<string:question_id>")
def update_question(question_id: str):
    if not _is_admin():
        return _json_error("Admin access required", 403)
    row = db.session.get(Question, question_id)
    if not row:
        return _json_error("Question not found", 404)
    try:
        data = QuestionSchema(partial=True, exclude=("id",)).load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Invalid question", "details": e.messages}), 400
    for field in ("title", "description", "difficulty", "tags", "is_active"):
        if field in data:
            setattr(row, field, data[field])
    db.session.commit()
    return jsonify({"question": _question_to_dict(row)})


@questions_bp.delete("/<string:question_id>")
def delete_question(question_id: str):
    if not _is_admin():
        return _json_error("Admin access required", 403)
    row = db.session.get(Question, question_id)
    if not row:
        return _json_error("Question not found", 404)
    db.session.delete(row)
    db.session.commit()
    return jsonify({"deleted": question_id})


# -------------------------------------------------------------- submissions

@submissions_bp.post("")
def create_submission():
    sess = _session()
    if not sess or not sess.is_authenticated:
        return _json_error("Authentication required", 401)
    try:
        data = SubmissionSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Invalid submission", "details": e.messages}), 400
    question = db.session.get(Question, data["question_id"])
    if not question or not question.is_active:
        return _json_error("Question not found", 404)
    row = Submission(
        user_id=int(sess.user_id),
        question_id=question.id,
        code=data["code"],
        workspace_state=data.get("workspace_state"),
        status="pending",
    )
    db.session.add(row)
    db.session.commit()
    logger.info("Submission %s for %s by user %s", row.id, question.id, sess.user_id)
    return jsonify({"submission": _submission_to_dict(row)}), 201


@submissions_bp.get("/mine")
def list_my_submissions():
    sess = _session()
    if not sess or not sess.is_authenticated:
        return _json_error("Authentication required", 401)
    rows = (
        Submission.query.filter(Submission.user_id == int(sess.user_id))
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .all()
    )
    return jsonify({"submissions": [_submission_to_dict(s) for s in rows]})


@submissions_bp.get("")
def list_submissions():
    """Admin: all submissions, newest first.

    Query params: status, questionId
    """
    if not _is_admin():
        return _json_error("Admin access required", 403)
    q = Submission.query
    status = (request.args.get("status") or "").strip()
    question_id = (request.args.get("questionId") or "").strip()
    if status:
        q = q.filter(Submission.status == status)
    if question_id:
        q = q.filter(Submission.question_id == question_id)
    rows = q.order_by(Submission.submitted_at.desc(), Submission.id.desc()).all()
    return jsonify({"submissions": [_submission_to_dict(s) for s in rows]})


@submissions_bp.patch("/<int:submission_id>/grade")
def grade_submission(submission_id: int):
    """Admin: grade a submission. ``status`` defaults to ``graded``."""
    if not _is_admin():
        return _json_error("Admin access required", 403)
    row = db.session.get(Submission, submission_id)
    if not row:
        return _json_error("Submission not found", 404)
    try:
        data = GradeSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Invalid grade", "details": e.messages}), 400
    row.grade = data.get("grade")
    row.score = data.get("score")
    row.feedback = data.get("feedback") or ""
    row.status = data["status"]
    row.graded_at = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("Submission %s graded %s by user %s", submission_id, row.status, _session().user_id)
    return jsonify({"submission": _submission_to_dict(row)})
