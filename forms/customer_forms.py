from wtforms import StringField, SelectField
from wtforms.validators import DataRequired, Length, Optional, ValidationError, Regexp

from forms.base import JsonForm, ListForm, ChoiceField, OptionalBooleanField
from forms.validators import (Document, BrazilState, EMAIL_RE, PHONE_RE, CEP_RE,
                              document_matches_customer_type)
from models.customer import CUSTOMER_TYPES, CUSTOMER_TYPE_LABELS, RETAIL

TYPE_CHOICES = [(t, CUSTOMER_TYPE_LABELS[t]) for t in CUSTOMER_TYPES]


class CustomerForm(JsonForm):
    name = StringField('Nome', validators=[DataRequired(message='Nome é obrigatório'), Length(min=2, max=255)])
    email = StringField('Email', validators=[Optional(), Length(max=255), Regexp(EMAIL_RE, message='Email inválido')])
    phone = StringField('Telefone', validators=[Optional(), Regexp(PHONE_RE, message='Telefone inválido')])
    document = StringField('CPF/CNPJ', validators=[Optional(), Document()])
    type = ChoiceField('Tipo', choices=TYPE_CHOICES)
    address = StringField('Endereço', validators=[Optional(), Length(max=255)])
    neighborhood = StringField('Bairro', validators=[Optional(), Length(max=100)])
    city = StringField('Cidade', validators=[Optional(), Length(max=100)])
    state = StringField('UF', validators=[Optional(), BrazilState()])
    zip_code = StringField('CEP', validators=[Optional(), Regexp(CEP_RE, message='CEP inválido')])
    is_active = OptionalBooleanField('Ativo')

    def validate_type(self, field):
        customer_type = field.data or RETAIL
        if self.document.data and not document_matches_customer_type(customer_type, self.document.data):
            raise ValidationError('Cliente varejo requer CPF e cliente atacado requer CNPJ')


class UpdateCustomerForm(CustomerForm):
    name = StringField('Nome', validators=[Optional(), Length(min=2, max=255)])

    def validate_type(self, field):
        # checked against the stored type by the service
        pass


class CustomerFiltersForm(ListForm):
    type = ChoiceField(choices=TYPE_CHOICES)
    city = StringField(validators=[Optional(), Length(max=100)])
    state = StringField(validators=[Optional(), BrazilState()])
    is_active = OptionalBooleanField()
    has_email = OptionalBooleanField()
    has_document = OptionalBooleanField()
    has_purchases = OptionalBooleanField()
    sort_by = SelectField(choices=[('name', 'name'), ('createdAt', 'createdAt'), ('city', 'city')],
                          default='name')
    sort_order = SelectField(choices=[('asc', 'asc'), ('desc', 'desc')], default='asc')


class DocumentValidationForm(JsonForm):
    document = StringField('CPF/CNPJ', validators=[DataRequired(message='Documento é obrigatório')])
    type = ChoiceField(choices=[('CPF', 'CPF'), ('CNPJ', 'CNPJ')])
