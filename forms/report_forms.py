from wtforms import IntegerField, SelectField, StringField, DateField, DecimalField
from wtforms.validators import AnyOf, Length, NumberRange, Optional, ValidationError

from forms.base import JsonForm, ChoiceField, OptionalBooleanField
from forms.validators import BrazilState
from models.customer import CUSTOMER_TYPES, CUSTOMER_TYPE_LABELS
from models.sale import SALE_STATUSES, STATUS_LABELS

PERIODS = ('today', 'week', 'month', 'quarter', 'year')

REPORT_PERIODS = ('today', 'yesterday', 'last7days', 'last30days', 'thisMonth', 'lastMonth',
                  'thisQuarter', 'lastQuarter', 'thisYear', 'lastYear', 'custom')
MAX_RANGE_DAYS = 365
SALES_GROUPS = ('vendor', 'category')
STOCK_FILTERS = ('all', 'low', 'out', 'normal')


class DashboardForm(JsonForm):
    period = SelectField(choices=[('today', 'Hoje'), ('week', 'Semana'), ('month', 'Mês'),
                                  ('quarter', 'Trimestre'), ('year', 'Ano')], default='month')
    days = IntegerField(default=30, validators=[Optional(), NumberRange(min=1, max=365)])
    limit = IntegerField(default=10, validators=[Optional(), NumberRange(min=1, max=50)])


class ReportForm(JsonForm):
    """Period or explicit date range shared by every report."""
    period = StringField(validators=[Optional(), AnyOf(REPORT_PERIODS, message='Período inválido')])
    start_date = DateField(validators=[Optional()])
    end_date = DateField(validators=[Optional()])
    format = SelectField(choices=[('json', 'JSON'), ('xlsx', 'Excel')], default='json')
    include_details = OptionalBooleanField()
    limit = IntegerField(default=10, validators=[Optional(), NumberRange(min=1, max=100)])

    def validate_period(self, field):
        if field.data == 'custom' and not (self.start_date.data and self.end_date.data):
            raise ValidationError('Para período customizado, datas inicial e final são obrigatórias')

    def validate_end_date(self, field):
        start = self.start_date.data
        if not (field.data and start):
            return
        if start > field.data:
            raise ValidationError('Data inicial deve ser anterior à data final')
        if (field.data - start).days > MAX_RANGE_DAYS:
            raise ValidationError(f'Período máximo permitido é {MAX_RANGE_DAYS} dias')


class SalesReportForm(ReportForm):
    vendor_id = IntegerField(validators=[Optional(), NumberRange(min=1)])
    customer_id = IntegerField(validators=[Optional(), NumberRange(min=1)])
    category_id = IntegerField(validators=[Optional(), NumberRange(min=1)])
    status = ChoiceField(choices=[(s, STATUS_LABELS[s]) for s in SALE_STATUSES])
    min_value = DecimalField(validators=[Optional(), NumberRange(min=0)])
    max_value = DecimalField(validators=[Optional(), NumberRange(min=0)])
    group_by = StringField(validators=[Optional(), Length(max=50)])

    def validate_max_value(self, field):
        if field.data is not None and self.min_value.data is not None and field.data < self.min_value.data:
            raise ValidationError('Valor mínimo deve ser menor que valor máximo')

    def validate_group_by(self, field):
        if field.data and not set(self.groups()) <= set(SALES_GROUPS):
            raise ValidationError('Agrupamento inválido')

    def groups(self):
        return [g.strip() for g in (self.group_by.data or '').split(',') if g.strip()]


class ProductReportForm(ReportForm):
    category_id = IntegerField(validators=[Optional(), NumberRange(min=1)])
    supplier_id = IntegerField(validators=[Optional(), NumberRange(min=1)])
    include_inactive = OptionalBooleanField()
    stock_status = StringField(default='all', validators=[Optional(), AnyOf(STOCK_FILTERS,
                                                                            message='Status de estoque inválido')])


class FinancialReportForm(ReportForm):
    include_taxes = OptionalBooleanField()


class CustomerReportForm(ReportForm):
    customer_type = ChoiceField(choices=[(t, CUSTOMER_TYPE_LABELS[t]) for t in CUSTOMER_TYPES])
    only_active = OptionalBooleanField()
    min_purchases = IntegerField(validators=[Optional(), NumberRange(min=1)])
    city = StringField(validators=[Optional(), Length(max=100)])
    state = StringField(validators=[Optional(), BrazilState()])


class InventoryReportForm(ReportForm):
    category_id = IntegerField(validators=[Optional(), NumberRange(min=1)])
    location = StringField(validators=[Optional(), Length(max=100)])
    include_movements = OptionalBooleanField()
