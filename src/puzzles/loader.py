import json
import os
from typing import Any, Dict, List

import pandas as pd

from src.utils.io import load_json

SUPPORTED_SUFFIXES = (".json", ".jsonl", ".parquet")


def coerce_jsonable(value: Any) -> Any:
    """Turn numpy arrays/scalars (as produced by parquet reads) into plain Python values."""
    if isinstance(value, dict):
        return {k: coerce_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [coerce_jsonable(v) for v in value]
    if hasattr(value, "tolist"):
        return coerce_jsonable(value.tolist())
    return value


def load_puzzles(file_path: str) -> List[Dict[str, Any]]:
    """
    Reads puzzle records from a file. Handles .json (object, array, or JSONL
    stored under a .json name), .jsonl and .parquet.
    Returns a list of raw puzzle dictionaries.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    def _normalize_record(record: Dict[str, Any], idx: int) -> Dict[str, Any]:
        record = coerce_jsonable(record)
        if not record.get("id"):
            stem = os.path.splitext(os.path.basename(file_path))[0]
            record["id"] = f"{stem}-{idx}"
        return record

    def _finish(records: List[Any]) -> List[Dict[str, Any]]:
        dicts = [r for r in records if isinstance(r, dict)]
        return [_normalize_record(r, idx) for idx, r in enumerate(dicts)]

    # Case 1: Parquet File (Binary)
    if file_path.endswith(".parquet"):
        df = pd.read_parquet(file_path)
        return _finish(df.to_dict(orient="records"))

    # Case 2: JSON File (Text; array or object)
    if file_path.endswith(".json"):
        try:
            payload = load_json(file_path)
        except json.JSONDecodeError:
            # Some sources use ".json" but actually store JSONL.
            return _finish(_read_jsonl(file_path))
        if isinstance(payload, list):
            return _finish(payload)
        if isinstance(payload, dict):
            return _finish([payload])
        return []

    # Case 3: JSONL File (Text)
    return _finish(_read_jsonl(file_path))


def _read_jsonl(file_path: str) -> List[Any]:
    data = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                data.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return data
