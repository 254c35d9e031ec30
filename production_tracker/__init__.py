from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

db = SQLAlchemy()
migrate = Migrate()

def create_app(testing: bool=False, **overrides):
    from .config import Config, TestConfig

    app = Flask(__name__)
    app.config.from_object(TestConfig if testing else Config)
    app.config.update(overrides)
    app.json.sort_keys = False

    CORS(app, origins=app.config["CORS_ORIGINS"])
    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401
    from .routes import bp as main_bp
    from .api import api as api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    app.logger.info(
        "production tracker ready (strict stages: %s)", app.config["STRICT_STAGE_TRANSITIONS"]
    )
    return app
