from wtforms import StringField, SelectField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from forms.base import JsonForm, ListForm, OptionalBooleanField
from forms.validators import CNAE_RE


class CategoryForm(JsonForm):
    name = StringField('Nome', validators=[DataRequired(message='Nome é obrigatório'), Length(min=2, max=100)])
    description = StringField('Descrição', validators=[Optional(), Length(max=255)])
    cnae = StringField('CNAE', validators=[Optional(), Regexp(CNAE_RE, message='CNAE deve estar no formato 0000-0/00')])
    is_active = OptionalBooleanField('Ativa')


class UpdateCategoryForm(CategoryForm):
    name = StringField('Nome', validators=[Optional(), Length(min=2, max=100)])


class CategoryFiltersForm(ListForm):
    is_active = OptionalBooleanField()
    has_products = OptionalBooleanField()
    sort_by = SelectField(choices=[('name', 'name'), ('createdAt', 'createdAt'), ('productCount', 'productCount')],
                          default='name')
    sort_order = SelectField(choices=[('asc', 'asc'), ('desc', 'desc')], default='asc')
