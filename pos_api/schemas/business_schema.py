from marshmallow import Schema, fields, validate

from ..constants.service_code import MEMBER_ROLES, STATUS


class BusinessSettingsSchema(Schema):
    currency = fields.Str(validate=validate.Length(equal=3))
    timezone = fields.Str(validate=validate.Length(min=1, max=64))


class BusinessSchema(Schema):
    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=200),
        error_messages={"required": "Business name is required"},
    )
    address = fields.Str(required=False, load_default="")
    contact = fields.Str(required=False, load_default="")
    type = fields.Str(required=False, load_default="retail")
    settings = fields.Nested(BusinessSettingsSchema, required=False)


class BusinessUpdateSchema(Schema):
    name = fields.Str(validate=validate.Length(min=1, max=200))
    address = fields.Str()
    contact = fields.Str()
    type = fields.Str()
    settings = fields.Nested(BusinessSettingsSchema)
    status = fields.Str(validate=validate.OneOf(list(STATUS.values())))


class BusinessDeleteQuerySchema(Schema):
    cascade = fields.Bool(load_default=False)


class BusinessMemberSchema(Schema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))
    role = fields.Str(required=True, validate=validate.OneOf(MEMBER_ROLES))
    display_name = fields.Str(required=False, load_default="")
