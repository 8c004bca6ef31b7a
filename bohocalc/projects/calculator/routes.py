"""
Basic calculator - a four-function accumulator driven by key presses.
The server keeps no per-client state: each request carries the current
accumulator state and gets the next one back.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from bohocalc import db
from bohocalc.projects.calculator.core.accumulator import Accumulator, InvalidKeyError
from bohocalc.projects.history.core.entries import HistoryValidationError, create_history_entry

logger = logging.getLogger(__name__)

calculator_bp = Blueprint('calculator', __name__)


def _load_state(data):
    return Accumulator.from_dict(data.get('state') if isinstance(data, dict) else None)


@calculator_bp.route('/api/state', methods=['GET'])
def api_initial_state():
    """Fresh accumulator: display '0', no pending operation."""
    return jsonify(Accumulator().to_dict())


@calculator_bp.route('/api/press', methods=['POST'])
def api_press():
    """Apply {key} or {keys: [...]} to {state}. Returns the new state."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request body'}), 400

    try:
        accumulator = _load_state(data)
        if 'keys' in data:
            keys = data['keys']
            if not isinstance(keys, list):
                return jsonify({'error': 'keys must be a list'}), 400
            accumulator.press_all(keys)
        else:
            accumulator.press(data.get('key'))
    except InvalidKeyError as e:
        return jsonify({'error': str(e)}), 400
    except ValueError as e:
        return jsonify({'error': f'Invalid state: {e}'}), 400

    return jsonify(accumulator.to_dict())


@calculator_bp.route('/api/save', methods=['POST'])
@login_required
def api_save():
    """Save the last completed calculation to history. Body: {state, tags?, notes?, context?}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request body'}), 400

    try:
        accumulator = _load_state(data)
    except ValueError as e:
        return jsonify({'error': f'Invalid state: {e}'}), 400

    if not accumulator.can_save:
        return jsonify({'error': 'No completed calculation to save'}), 400

    try:
        entry = create_history_entry(
            current_user.id,
            accumulator.last_expression,
            accumulator.display,
            tags=data.get('tags'),
            notes=data.get('notes'),
            context=data.get('context'),
        )
        db.session.commit()
    except HistoryValidationError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    logger.info(f"User {current_user.id} saved calculation {entry.id}")
    return jsonify(entry.to_dict()), 201
