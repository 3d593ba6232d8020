import logging
from flask import Flask

from .config import Config
from .extensions import db, jwt, cors, migrate
from .utils.api import ok

def create_app(config_object=Config, **overrides):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    config_object.init_app(app)
    app.config.update(overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("perks").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": "*"}})
    migrate.init_app(app, db)

    from .errors import register_error_handlers; register_error_handlers(app)
    from .cli import register_cli; register_cli(app)

    # Register blueprints
    from .codes import bp as codes_bp; app.register_blueprint(codes_bp)
    from .validation import bp as validation_bp; app.register_blueprint(validation_bp)

    @app.get("/")
    def health():
        return ok("API running")

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()

    return app
