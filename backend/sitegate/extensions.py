from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()


def get_services():
    """Collaborators registered by create_app (renderer, notifier)."""
    return current_app.extensions["sitegate"]
