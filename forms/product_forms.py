from decimal import Decimal

from wtforms import Form, StringField, IntegerField, DecimalField, SelectField, FieldList, FormField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError, Regexp

from forms.base import JsonForm, ListForm, OptionalBooleanField
from forms.validators import CODE_RE

MIN_PRICE = Decimal('0.01')
MAX_PRICE = Decimal('999999.99')
MAX_IMPORT_ROWS = 500

price_range = NumberRange(min=MIN_PRICE, max=MAX_PRICE, message='Preço deve estar entre 0,01 e 999.999,99')
code_format = Regexp(CODE_RE, message='Código deve conter apenas letras, números, hífen e sublinhado')


class ProductForm(JsonForm):
    name = StringField('Nome', validators=[DataRequired(message='Nome é obrigatório'), Length(min=2, max=128)])
    description = StringField('Descrição', validators=[Optional(), Length(max=1000)])
    price = DecimalField('Preço', places=2, validators=[InputRequired(message='Preço é obrigatório'), price_range])
    code = StringField('Código', validators=[DataRequired(message='Código é obrigatório'), Length(max=50), code_format])
    barcode = StringField('Código de barras', validators=[Optional(), Length(max=64)])
    category_id = IntegerField('Categoria', validators=[InputRequired(message='Categoria é obrigatória')])
    supplier_id = IntegerField('Fornecedor', validators=[Optional()])
    is_active = OptionalBooleanField('Ativo')
    initial_stock = IntegerField('Estoque inicial', validators=[Optional(), NumberRange(min=0)])
    min_stock = IntegerField('Estoque mínimo', validators=[Optional(), NumberRange(min=0)])
    max_stock = IntegerField('Estoque máximo', validators=[Optional(), NumberRange(min=0)])
    location = StringField('Localização', validators=[Optional(), Length(max=100)])

    def validate_max_stock(self, field):
        if field.data is not None and self.min_stock.data is not None and field.data < self.min_stock.data:
            raise ValidationError('Estoque máximo deve ser maior ou igual ao mínimo')


class UpdateProductForm(ProductForm):
    name = StringField('Nome', validators=[Optional(), Length(min=2, max=128)])
    price = DecimalField('Preço', places=2, validators=[Optional(), price_range])
    code = StringField('Código', validators=[Optional(), Length(max=50), code_format])
    category_id = IntegerField('Categoria', validators=[Optional()])
    initial_stock = None
    min_stock = None
    max_stock = None
    location = None


class ProductFiltersForm(ListForm):
    category_id = IntegerField(validators=[Optional()])
    supplier_id = IntegerField(validators=[Optional()])
    is_active = OptionalBooleanField()
    min_price = DecimalField(validators=[Optional(), NumberRange(min=0)])
    max_price = DecimalField(validators=[Optional(), NumberRange(min=0)])
    has_stock = OptionalBooleanField()
    low_stock = OptionalBooleanField()
    sort_by = SelectField(choices=[('name', 'name'), ('price', 'price'), ('code', 'code'), ('createdAt', 'createdAt')],
                          default='name')
    sort_order = SelectField(choices=[('asc', 'asc'), ('desc', 'desc')], default='asc')

    def validate_max_price(self, field):
        if field.data is not None and self.min_price.data is not None and field.data < self.min_price.data:
            raise ValidationError('Preço máximo deve ser maior ou igual ao mínimo')


class ProductSearchForm(JsonForm):
    q = StringField(validators=[DataRequired(message='Termo de busca é obrigatório'), Length(min=2, max=100)])
    category_id = IntegerField(validators=[Optional()])
    limit = IntegerField(default=10, validators=[Optional(), NumberRange(min=1, max=50)])


class ProductImportRow(Form):
    name = StringField(validators=[DataRequired(message='Nome é obrigatório'), Length(min=2, max=128)])
    code = StringField(validators=[DataRequired(message='Código é obrigatório'), Length(max=50), code_format])
    price = DecimalField(places=2, validators=[InputRequired(message='Preço é obrigatório'), price_range])
    category_id = IntegerField(validators=[InputRequired(message='Categoria é obrigatória')])
    supplier_id = IntegerField(validators=[Optional()])
    description = StringField(validators=[Optional(), Length(max=1000)])
    barcode = StringField(validators=[Optional(), Length(max=64)])
    initial_stock = IntegerField(validators=[Optional(), NumberRange(min=0)])
    min_stock = IntegerField(validators=[Optional(), NumberRange(min=0)])


class BulkImportForm(JsonForm):
    products = FieldList(FormField(ProductImportRow))
    skip_existing = OptionalBooleanField()

    def validate_products(self, field):
        if not field.entries:
            raise ValidationError('Informe ao menos um produto')
        if len(field.entries) > MAX_IMPORT_ROWS:
            raise ValidationError(f'Máximo de {MAX_IMPORT_ROWS} produtos por importação')
