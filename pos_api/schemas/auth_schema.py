from marshmallow import Schema, fields, validate


class RegisterSchema(Schema):
    email = fields.Email(required=True, error_messages={"required": "Email is required", "invalid": "Invalid email address"})
    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=6),
        error_messages={"required": "Password is required"},
    )
    display_name = fields.Str(required=False, load_default="", validate=validate.Length(max=120))


class LoginSchema(Schema):
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email address"})
    password = fields.Str(required=True, load_only=True, error_messages={"required": "password is required"})


class ForgotPasswordSchema(Schema):
    email = fields.Email(required=True, error_messages={"required": "Email is required"})


class ResetPasswordSchema(Schema):
    """Schema for completing a password reset."""
    oob_code = fields.Str(required=True, error_messages={"required": "Reset code is required"})
    new_password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=6),
        error_messages={"required": "Password is required"},
    )


class RefreshTokenSchema(Schema):
    refresh_token = fields.Str(required=True, load_only=True)


class UpdateUserSchema(Schema):
    display_name = fields.Str(required=False, validate=validate.Length(min=1, max=120))
    phone_number = fields.Str(required=False, validate=validate.Length(min=4, max=20))
    photo_url = fields.Url(required=False)
