import csv
import io

from cell_coercion import cell_text

FIELD_SIZE_LIMIT = 2**31 - 1


def parse_delimited(text: str, delimiter: str = ","):
    """Split delimited text into (headers, rows).

    Quoted fields may contain the delimiter, doubled quotes and line breaks.
    Empty records are skipped; ragged records are kept exactly as parsed.
    Raises csv.Error on text the reader cannot split.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    csv.field_size_limit(FIELD_SIZE_LIMIT)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=False)
    records = [record for record in reader if record]
    if not records:
        return [], []
    headers = records[0]
    return headers, records[1:]


def serialize_delimited(headers, rows, delimiter: str = ",") -> str:
    buf = io.StringIO()
    writer = csv.writer(
        buf, delimiter=delimiter, lineterminator="\n", quoting=csv.QUOTE_MINIMAL
    )
    writer.writerow([cell_text(h) for h in headers])
    for row in rows:
        writer.writerow([cell_text(cell) for cell in row])
    return buf.getvalue()
