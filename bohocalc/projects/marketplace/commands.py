import click
from flask.cli import with_appcontext
import logging

logger = logging.getLogger(__name__)

SAMPLE_CALCULATORS = [
    {
        "name": "Simple Interest",
        "description": "Interest earned on a principal at a fixed yearly rate.",
        "formula": "principal * rate * time / 100",
        "category": "Finance",
        "variables": [
            {"name": "principal", "label": "Principal Amount", "type": "number", "defaultValue": 1000, "unit": "$"},
            {"name": "rate", "label": "Interest Rate", "type": "number", "defaultValue": 5, "unit": "%"},
            {"name": "time", "label": "Time Period", "type": "number", "defaultValue": 1, "unit": "years"},
        ],
    },
    {
        "name": "Compound Interest",
        "description": "Future value of a principal compounded n times per year.",
        "formula": "principal * (1 + rate / 100 / n) ^ (n * years)",
        "category": "Finance",
        "variables": [
            {"name": "principal", "label": "Principal Amount", "type": "number", "defaultValue": 1000, "unit": "$"},
            {"name": "rate", "label": "Annual Rate", "type": "number", "defaultValue": 5, "unit": "%"},
            {"name": "n", "label": "Compounds per Year", "type": "number", "defaultValue": 12, "unit": ""},
            {"name": "years", "label": "Years", "type": "number", "defaultValue": 10, "unit": "years"},
        ],
    },
    {
        "name": "Body Mass Index",
        "description": "BMI from weight in kilograms and height in centimetres.",
        "formula": "weight / (height / 100) ^ 2",
        "category": "Health",
        "variables": [
            {"name": "weight", "label": "Weight", "type": "number", "defaultValue": 70, "unit": "kg"},
            {"name": "height", "label": "Height", "type": "number", "defaultValue": 175, "unit": "cm"},
        ],
    },
    {
        "name": "Kinetic Energy",
        "description": "Energy of a moving mass: one half m v squared.",
        "formula": "0.5 * mass * velocity ^ 2",
        "category": "Physics",
        "variables": [
            {"name": "mass", "label": "Mass", "type": "number", "defaultValue": 10, "unit": "kg"},
            {"name": "velocity", "label": "Velocity", "type": "number", "defaultValue": 5, "unit": "m/s"},
        ],
    },
    {
        "name": "Circle Area",
        "description": "Area enclosed by a circle of the given radius.",
        "formula": "pi * radius ^ 2",
        "category": "Math",
        "variables": [
            {"name": "radius", "label": "Radius", "type": "number", "defaultValue": 1, "unit": ""},
        ],
    },
    {
        "name": "Profit Margin",
        "description": "Net profit as a percentage of revenue.",
        "formula": "(revenue - cost) / revenue * 100",
        "category": "Business",
        "variables": [
            {"name": "revenue", "label": "Revenue", "type": "number", "defaultValue": 1000, "unit": "$"},
            {"name": "cost", "label": "Cost", "type": "number", "defaultValue": 600, "unit": "$"},
        ],
    },
]


@click.group(name='marketplace')
def marketplace_cli():
    """Calculator marketplace commands."""
    pass


@marketplace_cli.command('seed')
@click.option('--creator-email', default=None, help='Attribute the calculators to this user')
@with_appcontext
def seed_command(creator_email):
    """Add the sample calculators that are not already present (matched by name)."""
    from bohocalc import db
    from bohocalc.models import LogEntry, User
    from bohocalc.projects.marketplace.core.definitions import DefinitionError, clean_definition
    from bohocalc.projects.marketplace.models import Calculator

    creator = None
    if creator_email:
        creator = User.query.filter_by(email=creator_email.strip().lower()).first()
        if creator is None:
            raise click.ClickException(f"No user with email {creator_email}")

    added = 0
    for sample in SAMPLE_CALCULATORS:
        if Calculator.query.filter_by(name=sample["name"]).first():
            click.echo(f"  - {sample['name']} already exists, skipping")
            continue
        try:
            fields = clean_definition(sample)
        except DefinitionError as e:
            raise click.ClickException(f"Sample '{sample['name']}' is invalid: {e}")
        db.session.add(Calculator(creator_id=creator.id if creator else None, **fields))
        added += 1
        click.echo(f"  - Added {sample['name']}")

    db.session.add(LogEntry(project='marketplace', category='Seed', description=f"Seeded {added} sample calculators."))
    db.session.commit()
    click.echo(f"Seed complete! {added} calculators added.")


@marketplace_cli.command('recompute-stats')
@with_appcontext
def recompute_stats_command():
    """Rebuild usage counts and rating averages from the usage and rating tables."""
    from bohocalc import db
    from bohocalc.models import LogEntry
    from bohocalc.projects.marketplace.core.stats import recompute_all_stats

    changed = recompute_all_stats()
    db.session.add(LogEntry(project='marketplace', category='Recompute Stats', description=f"Recomputed stats; {changed} calculators changed."))
    db.session.commit()
    click.echo(f"Recompute complete! {changed} calculators updated.")
