from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd
from pydantic import BaseModel

# Excel refuses these in worksheet titles and caps titles at 31 characters
FORBIDDEN_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
MAX_SHEET_NAME = 31


def sheet_title(name: str) -> str:
    title = FORBIDDEN_SHEET_CHARS.sub("-", name).strip().strip("'")[:MAX_SHEET_NAME].strip()
    return title or "Records"


def export_records_xlsx(
    path: Path,
    rows: Iterable[BaseModel | Mapping[str, Any]],
    sheet_name: str = "Records",
) -> Path:
    """Write any list of entity rows to a single worksheet."""

    records = [
        row.model_dump(mode="json") if isinstance(row, BaseModel) else dict(row)
        for row in rows
    ]
    df = pd.DataFrame(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_title(sheet_name), index=False)
    return path
