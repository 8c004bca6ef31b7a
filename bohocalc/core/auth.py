from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf.csrf import generate_csrf
from bohocalc.models import User, LogEntry, db
from bohocalc.forms import RegistrationForm, LoginForm
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _form_errors(form):
    """First message per field, for the JSON error payload."""
    return {name: messages[0] for name, messages in form.errors.items() if messages}


@auth_bp.route("/api/csrf-token", methods=["GET"])
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


@auth_bp.route("/api/register", methods=["POST"])
def register():
    if current_user.is_authenticated:
        return jsonify({"error": "Already logged in"}), 400

    form = RegistrationForm()
    if not form.validate():
        return jsonify({"error": "Invalid registration", "fields": _form_errors(form)}), 400

    new_user = User(
        email=form.email.data.strip().lower(),
        username=form.username.data.strip(),
        time_zone=form.time_zone.data,
    )
    new_user.set_password(form.password.data)
    db.session.add(new_user)
    db.session.commit()

    # Log registration
    log_entry = LogEntry(
        project="auth",
        category="Register",
        actor_id=new_user.id,
        description=f"Email: {new_user.email}",
    )
    db.session.add(log_entry)
    db.session.commit()

    login_user(new_user)
    return jsonify(new_user.to_dict()), 201


@auth_bp.route("/api/login", methods=["POST"])
def login():
    if current_user.is_authenticated:
        return jsonify(current_user.to_dict())

    form = LoginForm()
    if not form.validate():
        return jsonify({"error": "Invalid login", "fields": _form_errors(form)}), 400

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user and user.check_password(form.password.data):
        login_user(user)

        # Log successful login
        log_entry = LogEntry(
            project="auth",
            category="Login",
            actor_id=user.id,
            description=f"Successful login for {user.email}",
        )
        db.session.add(log_entry)
        db.session.commit()
        return jsonify(user.to_dict())

    # Log failed login attempt
    log_entry = LogEntry(
        project="auth",
        category="Failed Login",
        actor_id=None,
        description=f"Failed login attempt for email: {email}",
    )
    db.session.add(log_entry)
    db.session.commit()
    logger.info(f"Failed login attempt for {email}")
    return jsonify({"error": "Invalid email or password"}), 401


@auth_bp.route("/api/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        # Log logout
        log_entry = LogEntry(
            project="auth",
            category="Logout",
            actor_id=current_user.id,
            description=f"User {current_user.email} logged out",
        )
        db.session.add(log_entry)
        db.session.commit()

    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user.to_dict())
