from .auth_resource import blp_auth
from .business_resource import blp_business
from .category_resource import blp_category
from .product_resource import blp_product
from .sale_resource import blp_sale
from .subscription_resource import blp_subscription

__all__ = [
    "blp_auth",
    "blp_business",
    "blp_category",
    "blp_product",
    "blp_sale",
    "blp_subscription",
]
