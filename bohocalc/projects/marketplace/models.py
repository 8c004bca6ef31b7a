"""
Calculator Marketplace Models
User-defined parametric calculators, their usage events and ratings.
"""

from datetime import datetime

from bohocalc import db


class Calculator(db.Model):
    """Marketplace: a named formula with typed variable slots"""

    __tablename__ = 'calculators'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    formula = db.Column(db.Text, nullable=False)
    variables = db.Column(db.JSON, nullable=False, default=list)  # ordered variable descriptors
    category = db.Column(db.String(50), nullable=False, default='Other')
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    is_anonymous = db.Column(db.Boolean, nullable=False, default=False)
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    rating_avg = db.Column(db.Float, nullable=False, default=0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)
    creator_id = db.Column(
        db.Integer,
        db.ForeignKey('user.id', ondelete='SET NULL'),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    creator = db.relationship('User', backref=db.backref('calculators', lazy=True))
    usages = db.relationship(
        'CalculatorUsage',
        backref=db.backref('calculator', lazy=True),
        cascade='all, delete-orphan',
    )
    ratings = db.relationship(
        'CalculatorRating',
        backref=db.backref('calculator', lazy=True),
        cascade='all, delete-orphan',
    )

    __table_args__ = (
        db.Index('ix_calculators_public_created', 'is_public', 'created_at'),
        db.Index('ix_calculators_category', 'category'),
        db.Index('ix_calculators_creator', 'creator_id'),
    )

    def is_visible_to(self, user):
        if self.is_public:
            return True
        return user is not None and user.is_authenticated and self.creator_id == user.id

    def is_owned_by(self, user):
        return (
            user is not None
            and user.is_authenticated
            and self.creator_id is not None
            and self.creator_id == user.id
        )

    def to_dict(self, viewer=None):
        """Convert calculator to dictionary for API responses. Anonymous creators are hidden from everyone but themselves."""
        show_creator = not self.is_anonymous or self.is_owned_by(viewer)
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'formula': self.formula,
            'variables': list(self.variables or []),
            'category': self.category,
            'is_public': self.is_public,
            'is_anonymous': self.is_anonymous,
            'usage_count': self.usage_count,
            'rating_avg': self.rating_avg,
            'rating_count': self.rating_count,
            'creator_id': self.creator_id if show_creator else None,
            'creator_name': self.creator.username if show_creator and self.creator else None,
            'is_owner': self.is_owned_by(viewer),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Calculator {self.id}: {self.name}>'


class CalculatorUsage(db.Model):
    """Marketplace: one run of a calculator"""

    __tablename__ = 'calculator_usage'

    id = db.Column(db.Integer, primary_key=True)
    calculator_id = db.Column(
        db.Integer,
        db.ForeignKey('calculators.id', ondelete='CASCADE'),
        nullable=False,
    )
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'), nullable=True)
    inputs = db.Column(db.JSON, nullable=False, default=dict)
    result = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_calculator_usage_calculator_id', 'calculator_id'),
    )

    def __repr__(self):
        return f'<CalculatorUsage {self.id} of Calculator {self.calculator_id}>'


class CalculatorRating(db.Model):
    """Marketplace: one user's 1-5 star rating of a calculator"""

    __tablename__ = 'calculator_ratings'

    id = db.Column(db.Integer, primary_key=True)
    calculator_id = db.Column(
        db.Integer,
        db.ForeignKey('calculators.id', ondelete='CASCADE'),
        nullable=False,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey('user.id', ondelete='CASCADE'),
        nullable=False,
    )
    rating = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('calculator_id', 'user_id', name='uq_calculator_ratings_calculator_user'),
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_calculator_ratings_range'),
    )

    def __repr__(self):
        return f'<CalculatorRating {self.rating} for Calculator {self.calculator_id} by User {self.user_id}>'
