import zipfile

from services.export import to_xlsx


def _shared_strings(buffer):
    with zipfile.ZipFile(buffer) as workbook:
        return workbook.read('xl/sharedStrings.xml').decode('utf-8')


def test_missing_values_become_blank_cells():
    rows = [
        {'name': 'Ana', 'email': None, 'phone': None},
        {'name': 'Bruno', 'email': 'bruno@test.com', 'phone': '81999990000'},
    ]
    buffer = to_xlsx(rows, {'name': 'Nome', 'email': 'E-mail', 'phone': 'Telefone'})

    strings = _shared_strings(buffer)
    assert 'Ana' in strings
    assert 'bruno@test.com' in strings
    assert 'Telefone' in strings
    assert 'nan' not in strings
    assert 'None' not in strings


def test_empty_rows_still_write_headers():
    buffer = to_xlsx([], {'name': 'Nome', 'email': 'E-mail'})
    assert buffer.getvalue()[:2] == b'PK'
    assert 'E-mail' in _shared_strings(buffer)
