"""
Calculator Marketplace - browse, create, run and rate parametric calculators.
Browsing and running are open to everyone; creating, saving and rating need login.
"""

import logging
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_cors import cross_origin
from flask_login import current_user, login_required
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from bohocalc import csrf, db
from bohocalc.projects.history.core.entries import HistoryValidationError, create_history_entry
from bohocalc.projects.marketplace.core.ai_service import (
    DEFAULT_MODEL,
    CalculatorGenerationError,
    MissingAPIKeyError,
    generate_calculator,
    get_api_key,
)
from bohocalc.projects.marketplace.core.constants import (
    CATEGORIES,
    DEFAULT_SORT,
    MAX_RATING,
    MAX_SEARCH_LENGTH,
    MIN_RATING,
    RUN_ERROR_MESSAGE,
    SORT_OPTIONS,
)
from bohocalc.projects.marketplace.core.definitions import (
    DefinitionError,
    clean_definition,
    history_expression,
)
from bohocalc.projects.marketplace.core.formula import FormulaError, evaluate_formula, resolve_inputs
from bohocalc.projects.marketplace.core.stats import record_usage, upsert_rating
from bohocalc.projects.marketplace.models import Calculator
from bohocalc.utils.formatting import format_number
from bohocalc.utils.logging import log_activity, log_project_visit

logger = logging.getLogger(__name__)

marketplace_bp = Blueprint(
    "marketplace",
    __name__,
    url_prefix="/marketplace",
)

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


# --- Helper Functions ---

def _viewer():
    return current_user if current_user.is_authenticated else None


def get_visible_calculator(calculator_id):
    """Calculator by ID if the current user may see it, else None."""
    calculator = db.session.get(Calculator, calculator_id)
    if calculator is None or not calculator.is_visible_to(_viewer()):
        return None
    return calculator


def _page_limit():
    default = current_app.config.get("MARKETPLACE_PAGE_LIMIT", 50)
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit, default))


def _run_inputs(data):
    inputs = data.get("inputs") if isinstance(data, dict) else None
    return inputs if inputs is not None else {}


@marketplace_bp.route("/api/categories", methods=["GET"])
def api_categories():
    return jsonify({"categories": CATEGORIES, "sort_options": list(SORT_OPTIONS)})


@marketplace_bp.route("/api/calculators", methods=["GET"])
def api_list_calculators():
    """List public calculators (plus the caller's own). Query: category, sort, q, limit."""
    log_project_visit("marketplace", "Calculator Marketplace")

    query = Calculator.query
    if current_user.is_authenticated:
        query = query.filter(or_(Calculator.is_public.is_(True), Calculator.creator_id == current_user.id))
    else:
        query = query.filter(Calculator.is_public.is_(True))

    category = (request.args.get("category") or "all").strip()
    if category.lower() != "all":
        if category not in CATEGORIES:
            return jsonify({"error": f"Unknown category: {category}"}), 400
        query = query.filter(Calculator.category == category)

    search = (request.args.get("q") or "").strip()
    if len(search) > MAX_SEARCH_LENGTH:
        return jsonify({"error": f"Search must be {MAX_SEARCH_LENGTH} characters or less"}), 400
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Calculator.name.ilike(pattern), Calculator.description.ilike(pattern)))

    sort = request.args.get("sort") or DEFAULT_SORT
    if sort not in SORT_OPTIONS:
        return jsonify({"error": f"Unknown sort: {sort}"}), 400
    column_name, descending = SORT_OPTIONS[sort]
    column = getattr(Calculator, column_name)
    query = query.order_by(column.desc() if descending else column.asc(), Calculator.id.desc())

    calculators = query.limit(_page_limit()).all()
    viewer = _viewer()
    return jsonify({"calculators": [c.to_dict(viewer) for c in calculators]})


@marketplace_bp.route("/api/calculators/<int:calculator_id>", methods=["GET"])
def api_get_calculator(calculator_id):
    calculator = get_visible_calculator(calculator_id)
    if calculator is None:
        return jsonify({"error": "Calculator not found"}), 404
    return jsonify(calculator.to_dict(_viewer()))


@marketplace_bp.route("/api/calculators", methods=["POST"])
@login_required
def api_create_calculator():
    """Create a calculator. Body: {name, formula, description?, variables?, category?, is_public?, is_anonymous?}."""
    try:
        fields = clean_definition(request.get_json(silent=True))
    except DefinitionError as e:
        return jsonify({"error": str(e)}), 400

    calculator = Calculator(creator_id=current_user.id, **fields)
    db.session.add(calculator)
    try:
        db.session.flush()
        log_activity(
            "marketplace",
            "Create Calculator",
            f"Created calculator {calculator.id} '{calculator.name[:50]}'",
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to save calculator")
        return jsonify({"error": "Failed to save calculator"}), 500

    return jsonify(calculator.to_dict(current_user)), 201


@marketplace_bp.route("/api/calculators/<int:calculator_id>", methods=["PATCH", "PUT"])
@login_required
def api_update_calculator(calculator_id):
    """Edit a calculator. Owner only."""
    calculator = get_visible_calculator(calculator_id)
    if calculator is None:
        return jsonify({"error": "Calculator not found"}), 404
    if not calculator.is_owned_by(current_user):
        return jsonify({"error": "You can only edit your own calculators"}), 403

    try:
        fields = clean_definition(request.get_json(silent=True), existing=calculator)
    except DefinitionError as e:
        return jsonify({"error": str(e)}), 400

    for key, value in fields.items():
        setattr(calculator, key, value)
    calculator.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(calculator.to_dict(current_user))


@marketplace_bp.route("/api/calculators/<int:calculator_id>", methods=["DELETE"])
@login_required
def api_delete_calculator(calculator_id):
    """Delete a calculator with its usage and ratings. Owner only."""
    calculator = get_visible_calculator(calculator_id)
    if calculator is None:
        return jsonify({"error": "Calculator not found"}), 404
    if not calculator.is_owned_by(current_user):
        return jsonify({"error": "You can only delete your own calculators"}), 403

    log_activity(
        "marketplace",
        "Delete Calculator",
        f"Deleted calculator {calculator.id} '{calculator.name[:50]}'",
        commit=False,
    )
    db.session.delete(calculator)
    db.session.commit()
    return "", 204


@marketplace_bp.route("/api/calculators/<int:calculator_id>/run", methods=["POST"])
def api_run_calculator(calculator_id):
    """Evaluate with {inputs}. Records a usage event on success."""
    calculator = get_visible_calculator(calculator_id)
    if calculator is None:
        return jsonify({"error": "Calculator not found"}), 404

    inputs = _run_inputs(request.get_json(silent=True))
    try:
        values = resolve_inputs(calculator.variables or [], inputs)
        result = format_number(evaluate_formula(calculator.formula, calculator.variables or [], values))
    except FormulaError as e:
        logger.info(f"Calculation error for calculator {calculator.id}: {e}")
        return jsonify({"error": RUN_ERROR_MESSAGE, "details": str(e)}), 400

    try:
        record_usage(calculator, current_user.id if current_user.is_authenticated else None, values, result)
        db.session.commit()
    except Exception:
        # The result is still valid; only the usage bookkeeping failed
        db.session.rollback()
        logger.exception(f"Error recording usage for calculator {calculator.id}")

    return jsonify({
        "result": result,
        "formula": calculator.formula,
        "inputs": values,
        "usage_count": calculator.usage_count,
    })


@marketplace_bp.route("/api/calculators/<int:calculator_id>/save", methods=["POST"])
@login_required
def api_save_run_to_history(calculator_id):
    """Re-run with {inputs} and store the result in the caller's history."""
    calculator = get_visible_calculator(calculator_id)
    if calculator is None:
        return jsonify({"error": "Calculator not found"}), 404

    inputs = _run_inputs(request.get_json(silent=True))
    try:
        values = resolve_inputs(calculator.variables or [], inputs)
        result = format_number(evaluate_formula(calculator.formula, calculator.variables or [], values))
    except FormulaError as e:
        return jsonify({"error": "No result to save", "details": str(e)}), 400

    try:
        entry = create_history_entry(
            current_user.id,
            history_expression(calculator, values),
            result,
            tags=[calculator.category, calculator.name],
            notes=f"Calculated using {calculator.name}",
        )
        db.session.commit()
    except HistoryValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    return jsonify(entry.to_dict()), 201


@marketplace_bp.route("/api/calculators/<int:calculator_id>/rate", methods=["POST"])
@login_required
def api_rate_calculator(calculator_id):
    """Rate 1-5 stars. Re-rating replaces the caller's previous rating."""
    calculator = get_visible_calculator(calculator_id)
    if calculator is None:
        return jsonify({"error": "Calculator not found"}), 404

    data = request.get_json(silent=True) or {}
    rating = data.get("rating")
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        return jsonify({"error": f"Rating must be a whole number from {MIN_RATING} to {MAX_RATING}"}), 400

    user_id = current_user.id
    try:
        upsert_rating(calculator, user_id, rating)
        db.session.commit()
    except IntegrityError:
        # A concurrent request inserted this user's first rating; update that row
        db.session.rollback()
        logger.info(f"Rating insert raced for calculator {calculator_id}, retrying as update")
        upsert_rating(calculator, user_id, rating)
        db.session.commit()

    return jsonify({
        "rating": rating,
        "rating_avg": calculator.rating_avg,
        "rating_count": calculator.rating_count,
    })


@marketplace_bp.route("/api/create-calculator", methods=["POST"])
@cross_origin(allow_headers=CORS_HEADERS)
@csrf.exempt
def api_generate_calculator():
    """
    Generate a calculator definition from {prompt, userInput} with OpenAI.
    Returns {success, calculatorData} or {error, details?, rawContent?}.
    Nothing is saved; the client reviews the definition and creates it.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request body"}), 400

    prompt = data.get("prompt")
    user_input = data.get("userInput")

    def _log(result, tokens=None):
        text = prompt if isinstance(prompt, str) else ""
        p_trunc = text[:200] + "..." if len(text) > 200 else text
        desc = f"AI create: '{p_trunc}' -> {result}"
        if tokens:
            desc += f". input_tokens={tokens['input_tokens']}, output_tokens={tokens['output_tokens']}"
        log_activity("marketplace", "AI Create", desc)

    try:
        get_api_key()
    except MissingAPIKeyError as e:
        logger.error("OpenAI API key is missing")
        _log(e.error)
        return jsonify(e.to_dict()), e.status_code

    if not isinstance(prompt, str) or not prompt.strip():
        return jsonify({"error": "Prompt is required"}), 400
    if user_input is not None and not isinstance(user_input, str):
        return jsonify({"error": "userInput must be text"}), 400

    model = current_app.config.get("OPENAI_MODEL") or DEFAULT_MODEL
    try:
        calculator_data, metadata = generate_calculator(prompt, user_input, model=model)
    except CalculatorGenerationError as e:
        _log(e.error)
        if e.raw_content is not None:
            logger.error(f"Failed to parse AI response: {e.details}. Raw content: {e.raw_content[:2000]}")
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        db.session.rollback()
        logger.exception("Calculator generation failed")
        _log("Internal server error")
        return jsonify({"error": "Internal server error", "details": str(e)}), 500

    _log(f"calculator '{calculator_data['name'][:50]}'", tokens=metadata)
    return jsonify({"success": True, "calculatorData": calculator_data})
