from decimal import Decimal

from wtforms import Form, StringField, IntegerField, DecimalField, SelectField, DateField, FieldList, FormField
from wtforms.validators import InputRequired, Length, NumberRange, Optional, ValidationError

from forms.base import JsonForm, ListForm, ChoiceField
from models.sale import SALE_STATUSES, STATUS_LABELS

MAX_QUANTITY = 10000
MAX_AMOUNT = Decimal('999999.99')
PERCENTAGE = 'PERCENTAGE'
FIXED = 'FIXED'
DISCOUNT_TYPES = [(PERCENTAGE, 'Percentual'), (FIXED, 'Valor fixo')]

quantity_range = NumberRange(min=1, max=MAX_QUANTITY, message=f'Quantidade deve estar entre 1 e {MAX_QUANTITY}')
price_range = NumberRange(min=Decimal('0.01'), max=MAX_AMOUNT, message='Preço unitário inválido')
amount_range = NumberRange(min=0, max=MAX_AMOUNT, message='Valor deve estar entre 0 e 999.999,99')


class SaleItemForm(Form):
    product_id = IntegerField(validators=[InputRequired(message='Produto é obrigatório'), NumberRange(min=1)])
    quantity = IntegerField(validators=[InputRequired(message='Quantidade é obrigatória'), quantity_range])
    unit_price = DecimalField(places=2, validators=[Optional(), price_range])
    discount = DecimalField(places=2, validators=[Optional(), amount_range])


class StockItemForm(Form):
    product_id = IntegerField(validators=[InputRequired(message='Produto é obrigatório'), NumberRange(min=1)])
    quantity = IntegerField(validators=[InputRequired(message='Quantidade é obrigatória'), quantity_range])


def _check_item_list(entries):
    if not entries:
        raise ValidationError('Venda deve ter pelo menos um item')
    product_ids = [entry.form.product_id.data for entry in entries]
    if len(product_ids) != len(set(product_ids)):
        raise ValidationError('Produtos duplicados na venda')


class CreateSaleForm(JsonForm):
    customer_id = IntegerField('Cliente', validators=[InputRequired(message='Cliente é obrigatório')])
    items = FieldList(FormField(SaleItemForm))
    discount = DecimalField('Desconto', places=2, validators=[Optional(), amount_range])
    tax = DecimalField('Impostos', places=2, validators=[Optional(), amount_range])
    notes = StringField('Observações', validators=[Optional(), Length(max=1000)])

    def validate_items(self, field):
        _check_item_list(field.entries)


class UpdateSaleForm(JsonForm):
    customer_id = IntegerField('Cliente', validators=[Optional()])
    discount = DecimalField('Desconto', places=2, validators=[Optional(), amount_range])
    tax = DecimalField('Impostos', places=2, validators=[Optional(), amount_range])
    notes = StringField('Observações', validators=[Optional(), Length(max=1000)])


class AddSaleItemForm(JsonForm, SaleItemForm):
    pass


class UpdateSaleItemForm(JsonForm):
    quantity = IntegerField('Quantidade', validators=[Optional(), quantity_range])
    unit_price = DecimalField('Preço unitário', places=2, validators=[Optional(), price_range])
    discount = DecimalField('Desconto', places=2, validators=[Optional(), amount_range])


class ValidateStockForm(JsonForm):
    items = FieldList(FormField(StockItemForm))

    def validate_items(self, field):
        _check_item_list(field.entries)


class ApplyDiscountForm(JsonForm):
    type = ChoiceField('Tipo', choices=DISCOUNT_TYPES)
    value = DecimalField('Valor', places=2, validators=[InputRequired(message='Valor é obrigatório'), amount_range])
    reason = StringField('Motivo', validators=[Optional(), Length(max=200)])

    def validate_type(self, field):
        if not field.data:
            raise ValidationError('Tipo de desconto é obrigatório')

    def validate_value(self, field):
        if self.type.data == PERCENTAGE and field.data is not None and field.data > 100:
            raise ValidationError('Desconto percentual não pode exceder 100%')


class CancelSaleForm(JsonForm):
    reason = StringField('Motivo', validators=[Optional(), Length(max=200)])


class SaleFiltersForm(ListForm):
    customer_id = IntegerField(validators=[Optional()])
    user_id = IntegerField(validators=[Optional()])
    status = ChoiceField(choices=[(s, STATUS_LABELS[s]) for s in SALE_STATUSES])
    date_from = DateField(validators=[Optional()])
    date_to = DateField(validators=[Optional()])
    min_total = DecimalField(validators=[Optional(), NumberRange(min=0)])
    max_total = DecimalField(validators=[Optional(), NumberRange(min=0)])
    sort_by = SelectField(choices=[('saleDate', 'saleDate'), ('total', 'total'), ('status', 'status'),
                                   ('createdAt', 'createdAt')], default='createdAt')

    def validate_date_to(self, field):
        if field.data and self.date_from.data and field.data < self.date_from.data:
            raise ValidationError('Data final deve ser posterior à inicial')

    def validate_max_total(self, field):
        if field.data is not None and self.min_total.data is not None and field.data < self.min_total.data:
            raise ValidationError('Valor máximo deve ser maior ou igual ao mínimo')
