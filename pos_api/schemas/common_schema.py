from marshmallow import Schema, fields, validate


class ApiResponseSchema(Schema):
    """Envelope returned by every JSON endpoint."""
    success = fields.Bool(required=True)
    status_code = fields.Int(required=True)
    message = fields.Str(required=True)
    data = fields.Raw(required=False, allow_none=True)
    errors = fields.Raw(required=False, allow_none=True)


class BulkDeleteSchema(Schema):
    ids = fields.List(
        fields.Str(validate=validate.Length(min=1)),
        required=True,
        validate=validate.Length(min=1, error="Array of IDs is required"),
        error_messages={"required": "Array of IDs is required"},
    )
