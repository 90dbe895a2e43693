from wtforms import StringField, PasswordField
from wtforms.validators import DataRequired, Length

from forms.base import JsonForm, OptionalBooleanField


class LoginForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(message='Email é obrigatório'), Length(max=255)])
    password = PasswordField('Senha', validators=[DataRequired(message='Senha é obrigatória')])
    remember = OptionalBooleanField('Lembrar')
