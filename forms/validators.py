"""
Brazilian document helpers (CPF/CNPJ) and WTForms validators built on them.
"""
import re

from wtforms.validators import ValidationError

CPF_LENGTH = 11
CNPJ_LENGTH = 14

BRAZIL_STATES = (
    'AC', 'AL', 'AP', 'AM', 'BA', 'CE', 'DF', 'ES', 'GO', 'MA',
    'MT', 'MS', 'MG', 'PA', 'PB', 'PR', 'PE', 'PI', 'RJ', 'RN',
    'RS', 'RO', 'RR', 'SC', 'SP', 'SE', 'TO',
)

CNPJ_WEIGHTS_1 = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
CNPJ_WEIGHTS_2 = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)

CNAE_RE = re.compile(r'^\d{4}-\d/\d{2}$')
PHONE_RE = re.compile(r'^\(?\d{2}\)?\s?\d{4,5}-?\d{4}$')
CEP_RE = re.compile(r'^\d{5}-?\d{3}$')
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
CODE_RE = re.compile(r'^[A-Za-z0-9_-]+$')


def clean_document(value):
    return re.sub(r'\D', '', value or '')


def is_valid_cpf(value):
    cpf = clean_document(value)
    if len(cpf) != CPF_LENGTH or cpf == cpf[0] * CPF_LENGTH:
        return False
    digits = [int(d) for d in cpf]
    for position in (9, 10):
        total = sum(d * w for d, w in zip(digits[:position], range(position + 1, 1, -1)))
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != digits[position]:
            return False
    return True


def _cnpj_digit(digits, weights):
    remainder = sum(d * w for d, w in zip(digits, weights)) % 11
    return 0 if remainder < 2 else 11 - remainder


def is_valid_cnpj(value):
    cnpj = clean_document(value)
    if len(cnpj) != CNPJ_LENGTH or cnpj == cnpj[0] * CNPJ_LENGTH:
        return False
    digits = [int(d) for d in cnpj]
    return (_cnpj_digit(digits[:12], CNPJ_WEIGHTS_1) == digits[12]
            and _cnpj_digit(digits[:13], CNPJ_WEIGHTS_2) == digits[13])


def document_type(value):
    """Return 'CPF', 'CNPJ' or 'INVALID' for a raw document."""
    clean = clean_document(value)
    if len(clean) == CPF_LENGTH and is_valid_cpf(clean):
        return 'CPF'
    if len(clean) == CNPJ_LENGTH and is_valid_cnpj(clean):
        return 'CNPJ'
    return 'INVALID'


def is_valid_document(value):
    return document_type(value) != 'INVALID'


def format_cpf(value):
    c = clean_document(value)
    if len(c) != CPF_LENGTH:
        return value
    return f'{c[:3]}.{c[3:6]}.{c[6:9]}-{c[9:]}'


def format_cnpj(value):
    c = clean_document(value)
    if len(c) != CNPJ_LENGTH:
        return value
    return f'{c[:2]}.{c[2:5]}.{c[5:8]}/{c[8:12]}-{c[12:]}'


def format_document(value):
    c = clean_document(value)
    if len(c) == CPF_LENGTH:
        return format_cpf(c)
    if len(c) == CNPJ_LENGTH:
        return format_cnpj(c)
    return value


def validate_document(value, expected_type=None):
    """Checks a document and reports its kind and formatted form."""
    kind = document_type(value)
    is_valid = kind != 'INVALID' and (expected_type is None or expected_type == kind)
    return {
        'isValid': is_valid,
        'type': kind,
        'formatted': format_document(value) if kind != 'INVALID' else value,
    }


def document_matches_customer_type(customer_type, document):
    """RETAIL customers carry a CPF, WHOLESALE customers a CNPJ."""
    if not document:
        return True
    length = len(clean_document(document))
    if customer_type == 'RETAIL':
        return length == CPF_LENGTH
    if customer_type == 'WHOLESALE':
        return length == CNPJ_LENGTH
    return True


class Document:
    """Accepts a valid CPF or CNPJ; empty values are left to Optional()."""

    def __init__(self, message=None):
        self.message = message or 'CPF ou CNPJ inválido'

    def __call__(self, form, field):
        if field.data and not is_valid_document(field.data):
            raise ValidationError(self.message)


class Cnpj:
    def __init__(self, message=None):
        self.message = message or 'CNPJ inválido'

    def __call__(self, form, field):
        if field.data and not is_valid_cnpj(field.data):
            raise ValidationError(self.message)


class BrazilState:
    def __init__(self, message=None):
        self.message = message or 'Estado deve ser uma UF válida'

    def __call__(self, form, field):
        if field.data and field.data.upper() not in BRAZIL_STATES:
            raise ValidationError(self.message)
