from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField, PasswordField
from wtforms.validators import DataRequired, Length, Optional

from smartdrishti.utils.errors import ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


class ApiForm(FlaskForm):
    """Form fed from a JSON body instead of form-encoded data."""

    class Meta:
        csrf = False

    # message used when any field fails validation
    error_message = "Invalid request"

    @classmethod
    def from_json(cls, data: dict):
        scalars = MultiDict(
            (key, value if isinstance(value, str) else str(value))
            for key, value in data.items()
            if value is not None and not isinstance(value, (list, dict, bool))
        )
        return cls(formdata=scalars)

    @classmethod
    def validated(cls, data: dict):
        """Builds and validates the form; raises ValidationError with ``error_message``."""
        form = cls.from_json(data)
        if not form.validate():
            raise ValidationError(cls.error_message)
        return form


class RegistrationForm(ApiForm):
    error_message = "Username, email, and password are required"

    username = StringField('Username', validators=[DataRequired(), Length(max=80)])
    email = StringField('Email', validators=[DataRequired(), Length(max=255)])
    password = PasswordField('Password', validators=[DataRequired()])
    role = StringField('Role', validators=[Optional()])


class LoginForm(ApiForm):
    error_message = "Email and password are required"

    email = StringField('Email', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class ProfileForm(ApiForm):
    error_message = "Username and email are required"

    username = StringField('Username', validators=[DataRequired(), Length(max=80)])
    email = StringField('Email', validators=[DataRequired(), Length(max=255)])


class ProjectForm(ApiForm):
    error_message = "Title, difficulty, and description are required"

    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    difficulty = StringField('Difficulty', validators=[DataRequired()])
    estimated_time = StringField('Estimated time', validators=[Optional(), Length(max=100)])
    description = StringField('Description', validators=[DataRequired()])


class DeviceForm(ApiForm):
    error_message = "Device ID and name are required"

    deviceId = StringField('Device ID', validators=[DataRequired(), Length(max=100)])
    name = StringField('Name', validators=[DataRequired(), Length(max=200)])
    type = StringField('Type', validators=[Optional(), Length(max=100)])
    location = StringField('Location', validators=[Optional(), Length(max=200)])
