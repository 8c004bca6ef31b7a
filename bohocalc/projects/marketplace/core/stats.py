"""
Usage and rating aggregates for marketplace calculators.
"""

from datetime import datetime

from sqlalchemy import func

from bohocalc import db
from bohocalc.projects.marketplace.models import Calculator, CalculatorRating, CalculatorUsage


def record_usage(calculator, user_id, inputs, result):
    """Add a usage row and bump usage_count in the same transaction. The caller commits."""
    db.session.add(CalculatorUsage(
        calculator_id=calculator.id,
        user_id=user_id,
        inputs=inputs,
        result=result,
    ))
    # Increment in SQL so concurrent runs don't overwrite each other
    db.session.query(Calculator).filter(Calculator.id == calculator.id).update(
        {Calculator.usage_count: Calculator.usage_count + 1},
        synchronize_session=False,
    )


def refresh_rating_stats(calculator):
    """Recompute rating_avg (2 decimals) and rating_count from the ratings table."""
    db.session.flush()
    avg, count = (
        db.session.query(func.avg(CalculatorRating.rating), func.count(CalculatorRating.id))
        .filter(CalculatorRating.calculator_id == calculator.id)
        .one()
    )
    calculator.rating_count = count or 0
    calculator.rating_avg = round(float(avg), 2) if avg is not None else 0


def find_rating(calculator_id, user_id):
    return CalculatorRating.query.filter_by(calculator_id=calculator_id, user_id=user_id).first()


def upsert_rating(calculator, user_id, rating):
    """
    Create or replace the user's rating and refresh the aggregates. The caller commits.

    Two first ratings from the same user can race past the lookup; the loser
    gets an IntegrityError from uq_calculator_ratings_calculator_user on flush.
    """
    existing = find_rating(calculator.id, user_id)
    if existing:
        existing.rating = rating
        existing.updated_at = datetime.utcnow()
    else:
        existing = CalculatorRating(calculator_id=calculator.id, user_id=user_id, rating=rating)
        db.session.add(existing)
    refresh_rating_stats(calculator)
    return existing


def recompute_all_stats():
    """
    Rebuild usage_count and rating aggregates for every calculator.
    Returns the number of calculators whose stored values changed.
    """
    usage_counts = dict(
        db.session.query(CalculatorUsage.calculator_id, func.count(CalculatorUsage.id))
        .group_by(CalculatorUsage.calculator_id)
        .all()
    )
    rating_stats = {
        row[0]: (row[1], row[2])
        for row in db.session.query(
            CalculatorRating.calculator_id,
            func.avg(CalculatorRating.rating),
            func.count(CalculatorRating.id),
        ).group_by(CalculatorRating.calculator_id)
    }

    changed = 0
    for calculator in Calculator.query.all():
        usage_count = usage_counts.get(calculator.id, 0)
        avg, count = rating_stats.get(calculator.id, (None, 0))
        rating_avg = round(float(avg), 2) if avg is not None else 0
        if (calculator.usage_count, calculator.rating_avg, calculator.rating_count) != (usage_count, rating_avg, count):
            calculator.usage_count = usage_count
            calculator.rating_avg = rating_avg
            calculator.rating_count = count
            changed += 1
    return changed
