from marshmallow import Schema, fields, validate


class ProductSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    category_id = fields.Str(required=False, allow_none=True, load_default=None)
    price = fields.Decimal(required=True, places=2, validate=validate.Range(min=0), as_string=False)
    stock = fields.Int(required=False, load_default=0, strict=True, validate=validate.Range(min=0))
    details = fields.Str(required=False, load_default="")


class ProductUpdateSchema(Schema):
    name = fields.Str(validate=validate.Length(min=1, max=200))
    category_id = fields.Str(allow_none=True)
    price = fields.Decimal(places=2, validate=validate.Range(min=0))
    stock = fields.Int(strict=True, validate=validate.Range(min=0))
    details = fields.Str()
    status = fields.Str(validate=validate.OneOf(["active", "inactive"]))


class ProductQuerySchema(Schema):
    category_id = fields.Str(required=False)
