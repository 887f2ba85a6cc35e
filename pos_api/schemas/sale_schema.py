from marshmallow import EXCLUDE, Schema, fields, validate

from ..constants.service_code import MAX_LINE_QUANTITY, MAX_SALE_AMOUNT, PAYMENT_METHODS


class SaleItemSchema(Schema):
    class Meta:
        # POS clients echo display fields such as product_name
        unknown = EXCLUDE

    product_id = fields.Str(required=True, validate=validate.Length(min=1))
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=1, max=MAX_LINE_QUANTITY))
    price = fields.Decimal(
        required=False, allow_none=True, load_default=None, validate=validate.Range(min=0, max=MAX_SALE_AMOUNT)
    )


class SaleSchema(Schema):
    items = fields.List(
        fields.Nested(SaleItemSchema),
        required=True,
        validate=validate.Length(min=1, error="Items array is required"),
        error_messages={"required": "Items array is required"},
    )
    total = fields.Decimal(
        required=False, allow_none=True, load_default=None, validate=validate.Range(min=0, max=MAX_SALE_AMOUNT)
    )
    payment_method = fields.Str(load_default="cash", validate=validate.OneOf(PAYMENT_METHODS))
    customer_id = fields.Str(required=False, allow_none=True, load_default=None)


class SaleQuerySchema(Schema):
    start_date = fields.DateTime(required=False)
    end_date = fields.DateTime(required=False)
    limit = fields.Int(required=False, validate=validate.Range(min=1, max=500))


class SaleSummaryQuerySchema(Schema):
    start_date = fields.DateTime(required=False)
    end_date = fields.DateTime(required=False)
