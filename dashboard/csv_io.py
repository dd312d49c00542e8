"""CSV import/export for the network bulk upload and the supplier list."""
import csv
import io
from typing import Iterable, List

from inventory.stock import format_certifications, parse_certifications

NETWORK_COLUMNS = ("user_id", "role_type")
SUPPLIER_COLUMNS = (
    "code", "name", "type", "rating", "leadTime", "paymentTerms", "currency",
    "contactPerson", "contactEmail", "contactPhone", "certifications",
)


class CsvFormatError(ValueError):
    pass


def parse_network_csv(text: str) -> List[dict]:
    """Parse a ``user_id,role_type`` upload into rows for the bulk endpoint.

    Row numbers count the header as row 1 and skip blank lines, so they
    match what the user sees in a spreadsheet with the blanks removed.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise CsvFormatError("CSV file must have at least a header row and one data row")
    reader = csv.reader(lines)
    headers = [h.strip().lower() for h in next(reader)]
    if not all(col in headers for col in NETWORK_COLUMNS):
        raise CsvFormatError('CSV file must have "user_id" and "role_type" columns')
    user_idx = headers.index("user_id")
    role_idx = headers.index("role_type")

    rows = []
    for row_number, values in enumerate(reader, start=2):
        values = [v.strip() for v in values]
        rows.append({
            "user_id": values[user_idx] if user_idx < len(values) else "",
            "role_type": values[role_idx] if role_idx < len(values) else "",
            "row_number": row_number,
        })
    return rows


def network_csv_template() -> str:
    return (
        "user_id,role_type\n"
        "user@example.com,SERVICE_CENTER\n"
        "user-id-123,DISTRIBUTOR\n"
    )


def export_suppliers_csv(suppliers: Iterable) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(SUPPLIER_COLUMNS)
    for sup in suppliers:
        writer.writerow([
            sup.code, sup.name, sup.type, sup.rating, sup.lead_time, sup.payment_terms, sup.currency,
            sup.contact_person or "", sup.contact_email or "", sup.contact_phone or "",
            format_certifications(sup.certifications),
        ])
    return buf.getvalue()


def import_suppliers_csv(text: str) -> List[dict]:
    """Read an exported supplier sheet back into create-supplier payloads."""
    reader = csv.DictReader(io.StringIO(text))
    missing = [c for c in ("code", "name") if c not in (reader.fieldnames or [])]
    if missing:
        raise CsvFormatError(f"Supplier CSV is missing columns: {', '.join(missing)}")
    suppliers = []
    for row in reader:
        record = {k: (v or "").strip() for k, v in row.items() if k in SUPPLIER_COLUMNS and k != "certifications"}
        record = {k: v for k, v in record.items() if v}
        record["certifications"] = parse_certifications(row.get("certifications") or "")
        suppliers.append(record)
    return suppliers
