from marshmallow import Schema, fields, validate

HEX_COLOR = validate.Regexp(r"^#(?:[0-9a-fA-F]{3}){1,2}$", error="Color must be a hex value like #1a2b3c")


class CategorySchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=120), error_messages={"required": "Name is required"})
    description = fields.Str(required=False, load_default="")
    color = fields.Str(required=False, load_default="#000000", validate=HEX_COLOR)


class CategoryUpdateSchema(Schema):
    name = fields.Str(validate=validate.Length(min=1, max=120))
    description = fields.Str()
    color = fields.Str(validate=HEX_COLOR)
    status = fields.Str(validate=validate.OneOf(["active", "inactive"]))
