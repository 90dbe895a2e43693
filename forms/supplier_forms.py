from wtforms import StringField, SelectField
from wtforms.validators import DataRequired, Length, Optional, URL, Regexp

from forms.base import JsonForm, ListForm, OptionalBooleanField
from forms.validators import Cnpj, BrazilState, EMAIL_RE, PHONE_RE, CEP_RE


class SupplierForm(JsonForm):
    name = StringField('Nome', validators=[DataRequired(message='Nome é obrigatório'), Length(min=2, max=128)])
    contact_person = StringField('Contato', validators=[Optional(), Length(max=128)])
    email = StringField('Email', validators=[Optional(), Length(max=255), Regexp(EMAIL_RE, message='Email inválido')])
    phone = StringField('Telefone', validators=[Optional(), Regexp(PHONE_RE, message='Telefone inválido')])
    address = StringField('Endereço', validators=[Optional(), Length(max=255)])
    city = StringField('Cidade', validators=[Optional(), Length(max=100)])
    state = StringField('UF', validators=[Optional(), BrazilState()])
    zip_code = StringField('CEP', validators=[Optional(), Regexp(CEP_RE, message='CEP inválido')])
    cnpj = StringField('CNPJ', validators=[Optional(), Cnpj()])
    website = StringField('Site', validators=[Optional(), URL(message='URL inválida'), Length(max=255)])
    notes = StringField('Observações', validators=[Optional(), Length(max=1000)])
    is_active = OptionalBooleanField('Ativo')


class UpdateSupplierForm(SupplierForm):
    name = StringField('Nome', validators=[Optional(), Length(min=2, max=128)])


class SupplierFiltersForm(ListForm):
    state = StringField(validators=[Optional(), BrazilState()])
    is_active = OptionalBooleanField()
    has_cnpj = OptionalBooleanField()
    sort_by = SelectField(choices=[('name', 'name'), ('createdAt', 'createdAt'), ('state', 'state')],
                          default='name')
    sort_order = SelectField(choices=[('asc', 'asc'), ('desc', 'desc')], default='asc')
