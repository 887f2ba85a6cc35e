# pos_api/utils/plan/plans.py

# Marks a quota that is never counted.
UNLIMITED = "unlimited"

DEFAULT_PLAN = "BASIC"

SUBSCRIPTION_PLANS = {
    "BASIC": {
        "name": "Basic",
        "price": 0,
        "limits": {
            "products": 50,
            "categories": 10,
            "orders": 100,
            "reports": False,
        },
    },
    "STARTER": {
        "name": "Starter",
        "price": 9,
        "limits": {
            "products": 150,
            "categories": 20,
            "orders": 300,
            "reports": False,
        },
    },
    "GROWTH": {
        "name": "Growth",
        "price": 19,
        "limits": {
            "products": 300,
            "categories": 35,
            "orders": 600,
            "reports": True,
        },
    },
    "PRO": {
        "name": "Pro",
        "price": 29,
        "limits": {
            "products": 500,
            "categories": 50,
            "orders": 1000,
            "reports": True,
        },
    },
    "ENTERPRISE": {
        "name": "Enterprise",
        "price": 99,
        "limits": {
            "products": UNLIMITED,
            "categories": UNLIMITED,
            "orders": UNLIMITED,
            "reports": True,
        },
    },
}

# Quota resource -> collection whose tenant documents are counted.
LIMIT_RULES = {
    "products": {"collection": "products"},
    "categories": {"collection": "categories"},
    "orders": {"collection": "sales"},
    "reports": {"collection": None},
}
