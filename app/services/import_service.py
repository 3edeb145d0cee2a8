"""
Bulk import of prospects and properties from CSV / Excel files

Flow: parse the file into header + row dicts, suggest a column mapping,
transform and validate each row, then create the valid rows one at a time.
Invalid rows are skipped and reported; rows already created stay created
when a later row fails.
"""
from dataclasses import dataclass, field
from io import BytesIO, StringIO
from typing import List, Dict, Tuple, Optional, Callable, Awaitable, Any
import json
import logging
import re
import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from app.models.property import PROPERTY_TYPES, PROPERTY_STATUSES

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx", "xls")
PREVIEW_ROWS = 5

PROSPECT = "prospects"
PROPERTY = "properties"

# (field, label, required)
PROSPECT_FIELDS = [
    ("name", "Name", True),
    ("email", "Email", True),
    ("phone", "Phone", True),
    ("status", "Status", False),
    ("source", "Source", False),
    ("budget_min", "Budget Min", False),
    ("budget_max", "Budget Max", False),
    ("bedrooms", "Bedrooms", False),
    ("bathrooms", "Bathrooms", False),
    ("area_min", "Area Min", False),
    ("area_max", "Area Max", False),
    ("property_types", "Property Types", False),
    ("locations", "Locations", False),
    ("features", "Features", False),
    ("notes", "Notes", False),
]

PROPERTY_FIELDS = [
    ("title", "Title", True),
    ("type", "Type", False),
    ("price", "Price", True),
    ("location", "Location", True),
    ("area", "Area", True),
    ("bathrooms", "Bathrooms", False),
    ("bedrooms", "Bedrooms", False),
    ("status", "Status", False),
    ("description", "Description", False),
    ("features", "Features", False),
    ("image1", "Image 1 URL", False),
    ("image2", "Image 2 URL", False),
    ("image3", "Image 3 URL", False),
]

# Exact header (case-insensitive) -> field
PROSPECT_EXACT = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "status": "status",
    "source": "source",
    "budget min": "budget_min",
    "budget max": "budget_max",
    "bedrooms": "bedrooms",
    "bathrooms": "bathrooms",
    "area min": "area_min",
    "area max": "area_max",
    "property types": "property_types",
    "locations": "locations",
    "features": "features",
    "notes": "notes",
}

PROPERTY_EXACT = {
    "title": "title",
    "type": "type",
    "price": "price",
    "location": "location",
    "area": "area",
    "bathrooms": "bathrooms",
    "bedrooms": "bedrooms",
    "status": "status",
    "description": "description",
    "features": "features",
}

# Fallback heuristics in priority order; the first unmapped field whose test passes wins
PROSPECT_HEURISTICS: List[Tuple[str, Callable[[str], bool]]] = [
    ("name", lambda h: "name" in h or h == "nom"),
    ("email", lambda h: "email" in h or "mail" in h),
    ("phone", lambda h: "phone" in h or "telephone" in h or "tel" in h),
    ("status", lambda h: "status" in h or "statut" in h),
    ("source", lambda h: "source" in h),
    ("budget_min", lambda h: "budget" in h and "min" in h),
    ("budget_max", lambda h: "budget" in h and "max" in h),
    ("bedrooms", lambda h: "bedroom" in h or "chambre" in h),
    ("bathrooms", lambda h: "bathroom" in h or "salle" in h),
    ("area_min", lambda h: "area" in h and "min" in h),
    ("area_max", lambda h: "area" in h and "max" in h),
    ("property_types", lambda h: "property" in h and "type" in h),
    ("locations", lambda h: "location" in h or "lieu" in h),
    ("features", lambda h: "feature" in h or "caractéristique" in h),
    ("notes", lambda h: "note" in h),
]

PROPERTY_HEURISTICS: List[Tuple[str, Callable[[str], bool]]] = [
    ("title", lambda h: "title" in h or "name" in h or h == "nom"),
    ("type", lambda h: "type" in h or "category" in h),
    ("price", lambda h: "price" in h or "prix" in h or "cost" in h),
    ("location", lambda h: "location" in h or "address" in h or "lieu" in h),
    ("area", lambda h: "area" in h or "surface" in h or "size" in h),
    ("bathrooms", lambda h: "bathroom" in h or "salle" in h),
    ("bedrooms", lambda h: "bedroom" in h or "chambre" in h),
    ("status", lambda h: "status" in h or "statut" in h),
    ("description", lambda h: "description" in h),
    ("features", lambda h: "feature" in h or "amenity" in h),
    # "Image 1 URL" compacts to "image1url"
    ("image1", lambda h: "image1" in _compact(h) or "photo1" in _compact(h)),
    ("image2", lambda h: "image2" in _compact(h) or "photo2" in _compact(h)),
    ("image3", lambda h: "image3" in _compact(h) or "photo3" in _compact(h)),
]

PROSPECT_TEMPLATE_ROW = {
    "Name": "John Doe",
    "Email": "john@example.com",
    "Phone": "+212612345678",
    "Status": "active",
    "Source": "website",
    "Budget Min": "500000",
    "Budget Max": "800000",
    "Bedrooms": "3",
    "Bathrooms": "2",
    "Area Min": "100",
    "Area Max": "150",
    "Property Types": "apartment,villa",
    "Locations": "Casablanca,Rabat",
    "Features": "Swimming Pool,Garage",
    "Notes": "Looking for modern property",
}

PROPERTY_TEMPLATE_ROW = {
    "Title": "Beautiful Modern Villa",
    "Type": "villa",
    "Price": "2500000",
    "Location": "Casablanca Marina",
    "Area": "350",
    "Bathrooms": "3",
    "Bedrooms": "4",
    "Status": "available",
    "Description": "Stunning modern villa with panoramic sea views",
    "Features": "Swimming Pool,Garden,Garage,Modern Kitchen",
    "Image 1 URL": "https://images.unsplash.com/photo-1564013799919-ab600027ffc6",
    "Image 2 URL": "https://images.unsplash.com/photo-1570129477492-45c003edd2be",
    "Image 3 URL": "https://images.unsplash.com/photo-1605276373954-0c4a0dac5cc0",
}

FIELDS = {PROSPECT: PROSPECT_FIELDS, PROPERTY: PROPERTY_FIELDS}
EXACT = {PROSPECT: PROSPECT_EXACT, PROPERTY: PROPERTY_EXACT}
HEURISTICS = {PROSPECT: PROSPECT_HEURISTICS, PROPERTY: PROPERTY_HEURISTICS}
TEMPLATES = {PROSPECT: PROSPECT_TEMPLATE_ROW, PROPERTY: PROPERTY_TEMPLATE_ROW}


@dataclass
class ImportSummary:
    total: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": self.errors,
        }


def _compact(text: str) -> str:
    return re.sub(r"\s+", "", text)


def _check_kind(kind: str) -> None:
    if kind not in FIELDS:
        raise ValueError(f"Unknown import type: {kind}")


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else ""


def detect_and_parse_csv(file_content: bytes) -> pd.DataFrame:
    """
    Parse CSV with every column kept as text.
    Tab-separated files are detected from the header line.
    """
    text = file_content.decode("utf-8-sig", errors="replace")
    first_line = text.split("\n")[0]
    delimiter = "\t" if first_line.count("\t") > first_line.count(",") else ","

    try:
        return pd.read_csv(
            StringIO(text),
            sep=delimiter,
            quotechar='"',
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        raise ValueError("The file appears to be empty")
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to parse CSV: {str(e)}")


def parse_excel(file_content: bytes, extension: str) -> pd.DataFrame:
    """First sheet only; .xlsx through openpyxl, legacy .xls through xlrd"""
    engine = "openpyxl" if extension == "xlsx" else "xlrd"
    try:
        return pd.read_excel(
            BytesIO(file_content),
            sheet_name=0,
            engine=engine,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
        )
    except Exception as e:
        raise ValueError(f"Failed to parse Excel file: {str(e)}") from e


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    return "" if text.lower() == "nan" else text


def parse_tabular_file(file_content: bytes, filename: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Returns (headers, rows). Every cell is a stripped string; rows whose
    cells are all blank are dropped.
    """
    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise ValueError("Please upload a CSV or Excel file")

    if extension == "csv":
        df = detect_and_parse_csv(file_content)
    else:
        df = parse_excel(file_content, extension)

    headers = [str(column).strip() for column in df.columns]
    if not headers or df.empty:
        raise ValueError("The file appears to be empty")

    rows = []
    for record in df.itertuples(index=False, name=None):
        row = {header: _cell_to_text(value) for header, value in zip(headers, record)}
        if any(row.values()):
            rows.append(row)

    if not rows:
        raise ValueError("The file appears to be empty")

    logger.info(f"📄 Parsed {filename}: {len(headers)} column(s), {len(rows)} row(s)")
    return headers, rows


def auto_map_columns(headers: List[str], kind: str) -> Dict[str, str]:
    """
    Suggest field -> header. An exact (case-insensitive) label match always
    wins; otherwise the first heuristic whose field is still unmapped.
    """
    _check_kind(kind)
    exact = EXACT[kind]
    heuristics = HEURISTICS[kind]
    mapping: Dict[str, str] = {}

    for header in headers:
        lower = header.strip().lower()
        if lower in exact:
            mapping[exact[lower]] = header
            continue
        for field_name, matches in heuristics:
            if field_name not in mapping and matches(lower):
                mapping[field_name] = header
                break

    return mapping


def resolve_mapping(headers: List[str], kind: str, mapping: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Use the caller's mapping when given (unknown fields and headers are
    dropped), else the automatic one. Required fields must be mapped.
    """
    _check_kind(kind)
    if mapping is None:
        resolved = auto_map_columns(headers, kind)
    else:
        known = {name for name, _, _ in FIELDS[kind]}
        resolved = {f: h for f, h in mapping.items() if f in known and h in headers}

    missing = [label for name, label, required in FIELDS[kind] if required and name not in resolved]
    if missing:
        raise ValueError(f"Missing column mapping for required fields: {', '.join(missing)}")
    return resolved


def parse_int(value: str, default: int = 0) -> int:
    """Leading integer of the cell after dropping currency signs, commas and spaces"""
    if not value:
        return default
    match = re.match(r"[+-]?\d+", re.sub(r"[$,\s]", "", value))
    return int(match.group()) if match else default


def parse_float(value: str, default: float = 0.0) -> float:
    if not value:
        return default
    match = re.match(r"[+-]?(\d+\.?\d*|\.\d+)", re.sub(r"[$,\s]", "", value))
    return float(match.group()) if match else default


def split_list(value: str, lower: bool = False) -> List[str]:
    items = [item.strip() for item in (value or "").split(",") if item.strip()]
    return [item.lower() for item in items] if lower else items


def _cell(row: Dict[str, str], mapping: Dict[str, str], field_name: str) -> str:
    header = mapping.get(field_name)
    if not header:
        return ""
    return (row.get(header) or "").strip()


def transform_prospect_row(row: Dict[str, str], mapping: Dict[str, str]) -> Tuple[Dict, List[str]]:
    """Row -> prospect payload plus validation errors (empty when valid)"""
    record = {
        "name": _cell(row, mapping, "name"),
        "email": _cell(row, mapping, "email"),
        "phone": _cell(row, mapping, "phone"),
        "status": _cell(row, mapping, "status").lower() or "active",
        "source": _cell(row, mapping, "source") or "import",
        "preferences": {
            "budget": {
                "min": parse_int(_cell(row, mapping, "budget_min")),
                "max": parse_int(_cell(row, mapping, "budget_max")),
            },
            "property_types": split_list(_cell(row, mapping, "property_types"), lower=True),
            "locations": split_list(_cell(row, mapping, "locations")),
            "bedrooms": parse_int(_cell(row, mapping, "bedrooms")),
            "bathrooms": parse_int(_cell(row, mapping, "bathrooms")),
            "area": {
                "min": parse_int(_cell(row, mapping, "area_min")),
                "max": parse_int(_cell(row, mapping, "area_max")),
            },
            "features": split_list(_cell(row, mapping, "features")),
        },
        "notes": _cell(row, mapping, "notes"),
    }

    errors = []
    if not record["name"]:
        errors.append("Name is required")
    if not record["email"]:
        errors.append("Email is required")
    if not record["phone"]:
        errors.append("Phone is required")

    return record, errors


def transform_property_row(row: Dict[str, str], mapping: Dict[str, str]) -> Tuple[Dict, List[str]]:
    """Row -> property payload plus validation errors; bad type/status fall back to house/available"""
    prop_type = _cell(row, mapping, "type").lower() or "house"
    status = _cell(row, mapping, "status").lower() or "available"

    record = {
        "title": _cell(row, mapping, "title"),
        "type": prop_type if prop_type in PROPERTY_TYPES else "house",
        "price": parse_float(_cell(row, mapping, "price")),
        "location": _cell(row, mapping, "location"),
        "area": parse_int(_cell(row, mapping, "area")),
        "bathrooms": parse_int(_cell(row, mapping, "bathrooms"), default=0) or 1,
        "bedrooms": parse_int(_cell(row, mapping, "bedrooms")),
        "status": status if status in PROPERTY_STATUSES else "available",
        "description": _cell(row, mapping, "description"),
        "features": split_list(_cell(row, mapping, "features")),
        "images": [
            url for url in (
                _cell(row, mapping, "image1"),
                _cell(row, mapping, "image2"),
                _cell(row, mapping, "image3"),
            ) if url
        ],
    }

    errors = []
    if not record["title"]:
        errors.append("Title is required")
    if record["price"] <= 0:
        errors.append("Valid price is required")
    if not record["location"]:
        errors.append("Location is required")
    if record["area"] <= 0:
        errors.append("Valid area is required")

    return record, errors


TRANSFORMS = {PROSPECT: transform_prospect_row, PROPERTY: transform_property_row}


def _error_message(exc: Exception) -> str:
    # pydantic ValidationError is a ValueError with structured details
    details = getattr(exc, "errors", None)
    if callable(details):
        try:
            first = details()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        except (IndexError, TypeError):
            pass
    return str(exc)


async def run_import(
    rows: List[Dict[str, str]],
    mapping: Dict[str, str],
    transform: Callable[[Dict[str, str], Dict[str, str]], Tuple[Dict, List[str]]],
    create: Callable[[Dict], Awaitable[Any]],
) -> ImportSummary:
    """
    Transform every row, skip the invalid ones, create the rest one by one.
    Row numbers in errors are 1-based data rows (header excluded).
    """
    summary = ImportSummary(total=len(rows))

    for index, row in enumerate(rows, start=1):
        record, errors = transform(row, mapping)
        if errors:
            summary.skipped += 1
            summary.errors.extend(f"Row {index}: {error}" for error in errors)
            continue

        try:
            await create(record)
            summary.imported += 1
        except (ValueError, SQLAlchemyError) as e:
            summary.failed += 1
            message = _error_message(e)
            summary.errors.append(f"Row {index}: {message}")
            logger.warning(f"⚠️ Import row {index} failed: {message}")

    logger.info(
        f"📥 Import finished: {summary.imported}/{summary.total} imported, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    return summary


def build_preview(file_content: bytes, filename: str, kind: str) -> Dict:
    """Headers, first rows, suggested mapping and the target fields"""
    _check_kind(kind)
    headers, rows = parse_tabular_file(file_content, filename)
    return {
        "filename": filename,
        "headers": headers,
        "total_rows": len(rows),
        "preview": rows[:PREVIEW_ROWS],
        "suggested_mapping": auto_map_columns(headers, kind),
        "fields": [
            {"key": name, "label": label, "required": required}
            for name, label, required in FIELDS[kind]
        ],
    }


def build_template_csv(kind: str) -> str:
    """Single sample row under the canonical column labels"""
    _check_kind(kind)
    return pd.DataFrame([TEMPLATES[kind]]).to_csv(index=False)


def parse_mapping_field(raw: Optional[str]) -> Optional[Dict[str, str]]:
    """Column mapping sent as a JSON object string in a multipart form"""
    if raw is None or not raw.strip():
        return None
    try:
        mapping = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError("Invalid column mapping")
    if not isinstance(mapping, dict) or not all(isinstance(v, str) for v in mapping.values()):
        raise ValueError("Invalid column mapping")
    return mapping


async def import_file(
    file_content: bytes,
    filename: str,
    kind: str,
    create: Callable[[Dict], Awaitable[Any]],
    mapping: Optional[Dict[str, str]] = None,
) -> ImportSummary:
    """Parse, map and import a whole file"""
    headers, rows = parse_tabular_file(file_content, filename)
    resolved = resolve_mapping(headers, kind, mapping)
    return await run_import(rows, resolved, TRANSFORMS[kind], create)
