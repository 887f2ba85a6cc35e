from ..resources import (
    blp_auth,
    blp_business,
    blp_category,
    blp_product,
    blp_sale,
    blp_subscription,
)


def register_routes(app, api):
    blueprints = [
        blp_auth,
        blp_business,
        blp_category,
        blp_product,
        blp_sale,
        blp_subscription,
    ]

    for blueprint in blueprints:
        api.register_blueprint(blueprint, url_prefix="/api")

    # Root route
    @app.route('/')
    def index():
        return {"message": "POS Service Online. API is healthy and ready to receive requests."}
