from io import BytesIO

import pandas as pd

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def to_xlsx(rows, columns, sheet_name='Dados'):
    """Write a list of dicts to an in-memory XLSX workbook; `columns` maps keys to headers."""
    df = pd.DataFrame(rows, columns=list(columns))
    df = df.rename(columns=columns).fillna('')
    output = BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        header_format = writer.book.add_format({
            'bold': True,
            'valign': 'top',
            'fg_color': '#D7E4BC',
            'border': 1,
            'align': 'center',
        })
        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_format)
        # column width from the longest value
        for i, col in enumerate(df.columns):
            longest = int(df[col].map(lambda v: len(str(v))).max()) if len(df) else 0
            worksheet.set_column(i, i, max(longest, len(col)) + 2)
    output.seek(0)
    return output
