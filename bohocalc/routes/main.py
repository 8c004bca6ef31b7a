from flask import Blueprint, jsonify
from flask_login import current_user
from bohocalc.projects.registry import get_sections_for_user

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    sections = get_sections_for_user(current_user.is_authenticated)
    return jsonify({
        'name': 'BohoCalc',
        'authenticated': current_user.is_authenticated,
        'sections': sections,
    })
