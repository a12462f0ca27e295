from marshmallow import EXCLUDE, Schema, fields, validate

PAYLOAD_TYPE = "blockhunt_blocks"

# Identifiers must carry at least one non-space character
_not_blank = validate.Regexp(r"\s*\S", error="Must not be blank.")


class ScanPayloadSchema(Schema):
    """Text embedded in a BlockHunt QR code."""

    class Meta:
        unknown = EXCLUDE

    type = fields.Str(required=True, validate=validate.Equal(PAYLOAD_TYPE, error="Invalid QR code type"))
    qr_id = fields.Str(required=True, data_key="qrId", validate=_not_blank)
    block = fields.Str(required=True, validate=_not_blank)
    name = fields.Str(load_default=None, allow_none=True)
    timestamp = fields.DateTime(load_default=None, allow_none=True, format="iso")
