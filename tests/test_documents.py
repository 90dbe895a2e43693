import pytest

from forms.validators import (clean_document, is_valid_cpf, is_valid_cnpj, document_type, format_document,
                              validate_document, document_matches_customer_type)

VALID_CPF = '52998224725'
VALID_CNPJ = '11222333000181'


@pytest.mark.parametrize('cpf', ['52998224725', '529.982.247-25', '11144477735'])
def test_valid_cpf(cpf):
    assert is_valid_cpf(cpf)


@pytest.mark.parametrize('cpf', ['52998224724', '11111111111', '123', ''])
def test_invalid_cpf(cpf):
    assert not is_valid_cpf(cpf)


@pytest.mark.parametrize('cnpj', ['11222333000181', '11.222.333/0001-81', '11444777000161'])
def test_valid_cnpj(cnpj):
    assert is_valid_cnpj(cnpj)


@pytest.mark.parametrize('cnpj', ['11222333000182', '00000000000000', '1122233300018'])
def test_invalid_cnpj(cnpj):
    assert not is_valid_cnpj(cnpj)


def test_clean_document_strips_punctuation():
    assert clean_document('529.982.247-25') == VALID_CPF
    assert clean_document(None) == ''


def test_document_type_detection():
    assert document_type(VALID_CPF) == 'CPF'
    assert document_type(VALID_CNPJ) == 'CNPJ'
    assert document_type('52998224724') == 'INVALID'


def test_format_document():
    assert format_document(VALID_CPF) == '529.982.247-25'
    assert format_document(VALID_CNPJ) == '11.222.333/0001-81'
    assert format_document('123') == '123'


def test_validate_document_with_expected_type():
    """A valid CPF fails validation when a CNPJ was expected."""
    assert validate_document(VALID_CPF) == {'isValid': True, 'type': 'CPF', 'formatted': '529.982.247-25'}
    assert validate_document(VALID_CPF, 'CNPJ')['isValid'] is False
    assert validate_document('abc')['type'] == 'INVALID'


def test_document_matches_customer_type():
    assert document_matches_customer_type('RETAIL', VALID_CPF)
    assert not document_matches_customer_type('RETAIL', VALID_CNPJ)
    assert document_matches_customer_type('WHOLESALE', VALID_CNPJ)
    assert not document_matches_customer_type('WHOLESALE', VALID_CPF)
    assert document_matches_customer_type('RETAIL', None)
