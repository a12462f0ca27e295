from marshmallow import Schema, fields, validate


class QRCodeCreateSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    block = fields.Str(required=True, validate=validate.Length(min=1))
    is_active = fields.Bool(data_key="isActive", load_default=True)
    start_date = fields.Str(data_key="startDate", load_default=None, allow_none=True)
    end_date = fields.Str(data_key="endDate", load_default=None, allow_none=True)


class QRCodeUpdateSchema(Schema):
    name = fields.Str(validate=validate.Length(min=1, max=200))
    is_active = fields.Bool(data_key="isActive")
    start_date = fields.Str(data_key="startDate", allow_none=True)
    end_date = fields.Str(data_key="endDate", allow_none=True)
