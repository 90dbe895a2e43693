from wtforms import StringField, PasswordField
from wtforms.validators import DataRequired, InputRequired, Length, Optional, Regexp

from forms.base import JsonForm, ListForm, ChoiceField, OptionalBooleanField
from forms.validators import EMAIL_RE
from models.user import ROLES, ROLE_LABELS

ROLE_CHOICES = [(role, ROLE_LABELS[role]) for role in ROLES]


class CreateUserForm(JsonForm):
    name = StringField('Nome', validators=[DataRequired(message='Nome é obrigatório'), Length(min=2, max=128)])
    email = StringField('Email', validators=[DataRequired(message='Email é obrigatório'), Length(max=255),
                                             Regexp(EMAIL_RE, message='Email inválido')])
    password = PasswordField('Senha', validators=[DataRequired(message='Senha é obrigatória'),
                                                  Length(min=6, message='Senha deve ter pelo menos 6 caracteres')])
    role = ChoiceField('Perfil', choices=ROLE_CHOICES)
    is_active = OptionalBooleanField('Ativo')


class UpdateUserForm(CreateUserForm):
    name = StringField('Nome', validators=[Optional(), Length(min=2, max=128)])
    email = StringField('Email', validators=[Optional(), Length(max=255), Regexp(EMAIL_RE, message='Email inválido')])
    password = PasswordField('Senha', validators=[Optional(),
                                                  Length(min=6, message='Senha deve ter pelo menos 6 caracteres')])


class ResetPasswordForm(JsonForm):
    new_password = PasswordField('Nova senha', validators=[DataRequired(message='Nova senha é obrigatória'),
                                                           Length(min=6, message='Senha deve ter pelo menos 6 caracteres')])


class UserStatusForm(JsonForm):
    is_active = OptionalBooleanField('Ativo', validators=[InputRequired(message='Status é obrigatório')])


class UserFiltersForm(ListForm):
    role = ChoiceField(choices=ROLE_CHOICES)
    is_active = OptionalBooleanField()
