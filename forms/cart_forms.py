from wtforms import StringField, IntegerField, DecimalField
from wtforms.validators import InputRequired, Length, NumberRange, Optional, ValidationError

from forms.base import JsonForm, ChoiceField, OptionalBooleanField
from forms.sale_forms import DISCOUNT_TYPES, PERCENTAGE, amount_range, price_range, quantity_range


class CartItemForm(JsonForm):
    product_id = IntegerField('Produto', validators=[InputRequired(message='Produto é obrigatório')])
    quantity = IntegerField('Quantidade', default=1, validators=[Optional(), quantity_range])
    unit_price = DecimalField('Preço unitário', places=2, validators=[Optional(), price_range])
    discount = DecimalField('Desconto', places=2, validators=[Optional(), amount_range])


class CartItemUpdateForm(JsonForm):
    quantity = IntegerField('Quantidade', validators=[Optional(), NumberRange(max=10000)])
    discount = DecimalField('Desconto', places=2, validators=[Optional(), amount_range])


class CartCustomerForm(JsonForm):
    customer_id = IntegerField('Cliente', validators=[Optional()])


class CartAdjustmentsForm(JsonForm):
    discount_type = ChoiceField('Tipo de desconto', choices=DISCOUNT_TYPES)
    discount_value = DecimalField('Desconto', places=2, validators=[Optional(), amount_range])
    tax = DecimalField('Impostos', places=2, validators=[Optional(), amount_range])

    def validate_discount_value(self, field):
        if (self.discount_type.data or PERCENTAGE) == PERCENTAGE and field.data is not None and field.data > 100:
            raise ValidationError('Desconto percentual não pode exceder 100%')


class CheckoutForm(JsonForm):
    notes = StringField('Observações', validators=[Optional(), Length(max=1000)])
    finalize = OptionalBooleanField('Finalizar')


class PosProductSearchForm(JsonForm):
    q = StringField(validators=[Optional(), Length(max=100)])
    category_id = IntegerField(validators=[Optional()])
    limit = IntegerField(default=20, validators=[Optional(), NumberRange(min=1, max=100)])

