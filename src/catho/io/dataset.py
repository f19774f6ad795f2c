# src/catho/io/dataset.py
"""
Append-only local dataset: one JSON object per line.

The crawler hands over batches that are already deduplicated, so this sink
just writes them. CSV export goes through pandas.
"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pandas as pd


class JsonlDataset:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0

    def persist_batch(self, records: Iterable[Dict[str, Any]]) -> None:
        lines = [json.dumps(r, ensure_ascii=False) for r in records]
        if not lines:
            return
        with self.path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        self.count += len(lines)


def read_records(path: Path | str) -> List[dict]:
    p = Path(path)
    if not p.exists():
        return []
    with p.open(encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def write_summary(path: Path | str, summary: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8")


def export_csv(jsonl_path: Path | str, csv_path: Path | str) -> int:
    """Write the dataset as CSV (drops the HTML description column). Returns row count."""
    df = pd.DataFrame(read_records(jsonl_path))
    if "description_html" in df.columns:
        df = df.drop(columns=["description_html"])
    df.to_csv(csv_path, index=False)
    return len(df)
