"""
Participant roster parsing for CSV uploads and the demo seeder.
"""
import pandas as pd
from typing import Dict, List


PARTICIPANT_FIELDS = ["name", "company", "email", "phone", "problem_tag"]


class RosterError(ValueError):
    """Raised when a roster file cannot be turned into participant rows."""


def _normalize_header(column) -> str:
    return str(column).strip().lower().replace(" ", "_")


def read_participant_csv(source) -> List[Dict[str, str]]:
    """
    Read a participant CSV (path or file-like) into import rows.
    Headers are matched case-insensitively; unknown columns are dropped and
    missing optional columns become empty strings.
    """
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        raise RosterError("CSV file is empty")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise RosterError(f"Could not parse CSV: {e}")

    df.columns = [_normalize_header(c) for c in df.columns]
    duplicated = sorted(set(df.columns[df.columns.duplicated()]))
    if duplicated:
        raise RosterError(f"Duplicate column(s) in CSV header: {', '.join(duplicated)}")
    if "name" not in df.columns:
        raise RosterError("CSV must have a 'name' column")

    for field in PARTICIPANT_FIELDS:
        if field not in df.columns:
            df[field] = ""

    df = df[PARTICIPANT_FIELDS].fillna("")
    for field in PARTICIPANT_FIELDS:
        df[field] = df[field].astype(str).str.strip()
    # Blank lines in spreadsheets export as rows of empty cells
    df = df[(df != "").any(axis=1)]

    return df.to_dict(orient="records")
