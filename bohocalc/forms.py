from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SelectField
from wtforms.validators import DataRequired, Length, Email, ValidationError
import pytz
from bohocalc.models import User


class RegistrationForm(FlaskForm):
    # JSON API forms; the CSRF token travels in the X-CSRFToken header instead
    class Meta:
        csrf = False

    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=4)])
    username = StringField("Username", validators=[DataRequired(), Length(max=50)])
    time_zone = SelectField(
        "Time Zone",
        choices=[(tz, tz) for tz in pytz.common_timezones],
        default="UTC",
    )

    def validate_email(self, email):
        user = User.query.filter_by(email=(email.data or "").strip().lower()).first()
        if user:
            raise ValidationError("Email already registered.")

    def validate_username(self, field):
        if not field.data or not field.data.strip():
            raise ValidationError("Username cannot be blank or only whitespace.")


class LoginForm(FlaskForm):
    class Meta:
        csrf = False

    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
