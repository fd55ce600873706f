from .boulders import boulders_bp
from .api import api_bp

def register_blueprints(app):
    app.register_blueprint(boulders_bp)
    app.register_blueprint(api_bp)
