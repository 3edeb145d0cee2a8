from pydantic import BaseModel
from typing import List, Dict


class ImportField(BaseModel):
    key: str
    label: str
    required: bool


class ImportPreviewResponse(BaseModel):
    filename: str
    headers: List[str]
    total_rows: int
    preview: List[Dict[str, str]]
    suggested_mapping: Dict[str, str]
    fields: List[ImportField]


class ImportSummaryResponse(BaseModel):
    total: int
    imported: int
    skipped: int
    failed: int
    errors: List[str]
