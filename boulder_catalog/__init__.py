import os

from flask import Flask

from .config import Config
from .extensions import db
from .helpers.record import quality_display


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(Config)

    # Tests pass a mapping to point at sqlite :memory: / tmp dirs
    if config:
        app.config.update(config)

    os.makedirs(app.config["UPLOAD_DIR"], exist_ok=True)

    db.init_app(app)

    from .routes import register_blueprints
    register_blueprints(app)

    # Range slider label: {{ quality_display(s.quality) }}
    app.jinja_env.globals["quality_display"] = quality_display

    return app
