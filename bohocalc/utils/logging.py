"""
Logging utilities for tracking user activity across the site.
"""

from flask_login import current_user
from bohocalc.models import LogEntry
from bohocalc import db


def _current_actor():
    if current_user and current_user.is_authenticated:
        return f"User {current_user.email}", current_user.id
    return "Anonymous user", None


def log_project_visit(project_name, project_display_name=None):
    """
    Log a visit to a project/page.

    Args:
        project_name (str): The project identifier (e.g., 'history', 'marketplace')
        project_display_name (str, optional): Human-readable name for the description.
                                              Defaults to project_name if not provided.
    """
    display_name = project_display_name or project_name
    user_desc, actor_id = _current_actor()

    log_entry = LogEntry(
        project=project_name,
        category='Visit',
        actor_id=actor_id,
        description=f"{user_desc} visited {display_name}"
    )
    db.session.add(log_entry)
    db.session.commit()


def log_activity(project_name, category, description, commit=True):
    """
    Record an activity performed by the current user (or anonymously).

    The entry is added to the session; pass commit=False when the caller
    commits together with its own changes.
    """
    _, actor_id = _current_actor()
    db.session.add(LogEntry(
        project=project_name,
        category=category,
        actor_id=actor_id,
        description=description,
    ))
    if commit:
        db.session.commit()
