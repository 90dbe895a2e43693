from wtforms import StringField, IntegerField, SelectField, DateField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError

from forms.base import JsonForm, ListForm, ChoiceField, OptionalBooleanField
from models.movement import MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_TYPES, MOVEMENT_LABELS

reason_length = Length(min=3, max=200, message='Motivo deve ter entre 3 e 200 caracteres')


class StockAdjustmentForm(JsonForm):
    product_id = IntegerField('Produto', validators=[InputRequired(message='Produto é obrigatório')])
    quantity = IntegerField('Quantidade', validators=[InputRequired(message='Quantidade é obrigatória'),
                                                      NumberRange(min=-100000, max=100000)])
    reason = StringField('Motivo', validators=[DataRequired(message='Motivo é obrigatório'), reason_length])

    def validate_quantity(self, field):
        if field.data == 0:
            raise ValidationError('Quantidade do ajuste não pode ser zero')


class StockMovementForm(JsonForm):
    product_id = IntegerField('Produto', validators=[InputRequired(message='Produto é obrigatório')])
    type = ChoiceField('Tipo', choices=[(t, MOVEMENT_LABELS[t]) for t in (MOVEMENT_IN, MOVEMENT_OUT)])
    quantity = IntegerField('Quantidade', validators=[InputRequired(message='Quantidade é obrigatória'),
                                                      NumberRange(min=1, max=100000)])
    reason = StringField('Motivo', validators=[DataRequired(message='Motivo é obrigatório'), reason_length])
    sale_id = IntegerField('Venda', validators=[Optional()])

    def validate_type(self, field):
        if not field.data:
            raise ValidationError('Tipo é obrigatório')


class InventoryUpdateForm(JsonForm):
    min_stock = IntegerField('Estoque mínimo', validators=[Optional(), NumberRange(min=0)])
    max_stock = IntegerField('Estoque máximo', validators=[Optional(), NumberRange(min=0)])
    location = StringField('Localização', validators=[Optional(), Length(max=100)])


class InventoryFiltersForm(ListForm):
    category_id = IntegerField(validators=[Optional()])
    low_stock = OptionalBooleanField()
    out_of_stock = OptionalBooleanField()
    location = StringField(validators=[Optional(), Length(max=100)])
    sort_by = SelectField(choices=[('productName', 'productName'), ('quantity', 'quantity'),
                                   ('lastUpdate', 'lastUpdate')], default='productName')
    sort_order = SelectField(choices=[('asc', 'asc'), ('desc', 'desc')], default='asc')


class MovementFiltersForm(ListForm):
    product_id = IntegerField(validators=[Optional()])
    type = ChoiceField(choices=[(t, MOVEMENT_LABELS[t]) for t in MOVEMENT_TYPES])
    user_id = IntegerField(validators=[Optional()])
    sale_id = IntegerField(validators=[Optional()])
    date_from = DateField(validators=[Optional()])
    date_to = DateField(validators=[Optional()])

    def validate_date_to(self, field):
        if field.data and self.date_from.data and field.data < self.date_from.data:
            raise ValidationError('Data final deve ser posterior à inicial')
