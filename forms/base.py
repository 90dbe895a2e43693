import re

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import Field, IntegerField, SelectField, StringField
from wtforms.validators import Length, NumberRange, Optional

from services.errors import ApiError

TRUE_VALUES = ('true', '1', 'y', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'n', 'no', 'off')

_CAMEL_RE = re.compile(r'(?<!^)(?=[A-Z])')


def snake_case(name):
    return _CAMEL_RE.sub('_', name).lower()


def _scalar(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def flatten_json(payload, prefix=''):
    """Turn a JSON object into a MultiDict using WTForms' `items-0-field` naming."""
    pairs = []
    for key, value in payload.items():
        name = f'{prefix}{snake_case(key)}'
        if value is None:
            continue
        if isinstance(value, dict):
            pairs.extend(flatten_json(value, f'{name}-').items(multi=True))
        elif isinstance(value, list):
            for index, entry in enumerate(value):
                if isinstance(entry, dict):
                    pairs.extend(flatten_json(entry, f'{name}-{index}-').items(multi=True))
                elif entry is not None:
                    pairs.append((name, _scalar(entry)))
        else:
            pairs.append((name, _scalar(value)))
    return MultiDict(pairs)


class OptionalBooleanField(Field):
    """Boolean that stays None unless the request carries it."""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] == '':
            self.data = None
            return
        value = valuelist[0].strip().lower()
        if value in TRUE_VALUES:
            self.data = True
        elif value in FALSE_VALUES:
            self.data = False
        else:
            self.data = None
            raise ValueError('Valor booleano inválido')

    def _value(self):
        return '' if self.data is None else ('true' if self.data else 'false')


class ChoiceField(SelectField):
    """SelectField that accepts an empty value and upper-cases the input."""

    def process_formdata(self, valuelist):
        if valuelist and valuelist[0] != '':
            self.data = valuelist[0].strip().upper()
        else:
            self.data = None

    def pre_validate(self, form):
        if self.data is None:
            return
        if self.data not in [value for value, _ in self.choices]:
            raise ValueError(self.gettext('Not a valid choice.'))


class JsonForm(FlaskForm):
    """Schema object for JSON bodies and query strings."""

    class Meta:
        csrf = False

    @classmethod
    def from_json(cls, payload, **kwargs):
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ApiError('Corpo da requisição deve ser um objeto JSON', 400)
        return cls(formdata=flatten_json(payload), **kwargs)

    @classmethod
    def from_args(cls, args=None, **kwargs):
        if args is None:
            args = request.args
        if isinstance(args, dict) and not hasattr(args, 'getlist'):
            return cls.from_json(args, **kwargs)
        pairs = [(snake_case(key), value) for key, value in args.items(multi=True)]
        return cls(formdata=MultiDict(pairs), **kwargs)

    def validate_or_raise(self, message='Dados inválidos'):
        if not self.validate():
            raise ApiError(message, 400, details=self.errors)
        return self

    def provided(self):
        """Data of the fields the request actually carried."""
        return {
            name: field.data
            for name, field in self._fields.items()
            if getattr(field, 'raw_data', None)
        }


class ListForm(JsonForm):
    """Shared paging and sorting fields of list endpoints."""
    page = IntegerField(default=1, validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=100, message='Limite deve estar entre 1 e 100')])
    search = StringField(validators=[Optional(), Length(max=100)])
    sort_order = SelectField(choices=[('asc', 'asc'), ('desc', 'desc')], default='desc')
