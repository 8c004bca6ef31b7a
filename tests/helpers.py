"""
Shared setup for route tests: a minimal app on in-memory SQLite with every
blueprint registered, plus shortcuts for creating and logging in users.
"""
from flask import Flask

from bohocalc import csrf, db, login_manager, register_blueprints
from bohocalc.models import User

TEST_PASSWORD = "secret-pass"


def create_test_app():
    """Minimal app with all blueprints, CSRF off and a fresh schema."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["WTF_CSRF_ENABLED"] = False
    app.config["SECRET_KEY"] = "test-secret"
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
    app.config["HISTORY_PAGE_LIMIT"] = 50
    app.config["MARKETPLACE_PAGE_LIMIT"] = 50
    app.config["OPENAI_MODEL"] = "gpt-4o-mini"
    db.init_app(app)
    csrf.init_app(app)
    login_manager.init_app(app)
    register_blueprints(app)
    with app.app_context():
        db.create_all()
    return app


def drop_test_db(app):
    with app.app_context():
        db.session.remove()
        db.drop_all()


def create_user(app, email="alice@example.com", username="Alice", time_zone="UTC"):
    """Insert a user and return its id."""
    with app.app_context():
        user = User(email=email, username=username, time_zone=time_zone)
        user.set_password(TEST_PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


def login(client, email="alice@example.com", password=TEST_PASSWORD):
    return client.post("/auth/api/login", json={"email": email, "password": password})
