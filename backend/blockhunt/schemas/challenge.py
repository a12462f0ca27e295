from marshmallow import Schema, fields, validate

from ..models.enums import SUBMISSION_STATUSES


class QuestionSchema(Schema):
    id = fields.Str(required=True, validate=validate.Regexp(r"^[A-Za-z0-9_\-]{1,80}$"))
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    description = fields.Str(load_default=None, allow_none=True)
    difficulty = fields.Str(load_default=None, allow_none=True)
    tags = fields.List(fields.Str(validate=validate.Length(min=1, max=40)), load_default=list)
    is_active = fields.Bool(data_key="isActive", load_default=True)


class SubmissionSchema(Schema):
    question_id = fields.Str(required=True, data_key="questionId")
    code = fields.Str(required=True)
    workspace_state = fields.Raw(data_key="workspaceState", load_default=None, allow_none=True)


class GradeSchema(Schema):
    grade = fields.Str(load_default=None, allow_none=True)
    score = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=0))
    feedback = fields.Str(load_default="")
    status = fields.Str(load_default="graded", validate=validate.OneOf([s for s in SUBMISSION_STATUSES if s != "pending"]))
