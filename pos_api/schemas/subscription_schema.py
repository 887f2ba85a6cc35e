from marshmallow import Schema, fields


class CreateCheckoutSchema(Schema):
    plan_id = fields.Str(required=True, error_messages={"required": "Missing plan_id"})
    business_id = fields.Str(required=True, error_messages={"required": "Missing business_id"})


class CancelSubscriptionSchema(Schema):
    business_id = fields.Str(required=True)


class PaymentSuccessQuerySchema(Schema):
    checkout_id = fields.Str(required=False)
