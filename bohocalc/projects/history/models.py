from datetime import datetime

from bohocalc import db


class CalculationHistory(db.Model):
    __tablename__ = 'calculation_history'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey('user.id', ondelete='CASCADE'),
        nullable=False,
    )
    expression = db.Column(db.Text, nullable=False)
    result = db.Column(db.String(255), nullable=False)
    tags = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Relationship to User
    user = db.relationship('User', backref=db.backref('calculation_history', lazy='dynamic'))

    __table_args__ = (
        db.Index('ix_calculation_history_user_created', 'user_id', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'expression': self.expression,
            'result': self.result,
            'tags': list(self.tags or []),
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<CalculationHistory {self.id}: {self.expression[:30]} = {self.result}>'
