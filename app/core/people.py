"""People to onboard.

The default source is a hardcoded list; the CLI can also read a CSV file
with the columns name, last_name, email, national_id.
"""
from __future__ import annotations
import csv
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

CSV_COLUMNS = ("name", "last_name", "email", "national_id")


@dataclass(frozen=True)
class Person:
    name: str
    last_name: str
    email: str
    national_id: str


PEOPLE: Tuple[Person, ...] = (
    Person(name="Ana", last_name="Torres", email="ana@example.com", national_id="12345678"),
    Person(name="Bruno", last_name="Costa", email="bruno@example.com", national_id="23456789"),
    Person(name="Carla", last_name="Mendes", email="carla@example.com", national_id="34567890"),
    Person(name="Diego", last_name="Ramos", email="diego@example.com", national_id="45678901"),
)


def load_people_csv(path: str | Path) -> List[Person]:
    """Read people from a CSV file with a header row.

    Raises:
        ValueError: A required column is missing from the header
    """
    with open(path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        missing = [col for col in CSV_COLUMNS if col not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"CSV file {path} is missing columns: {', '.join(missing)}")
        return [
            Person(**{col: (row.get(col) or "").strip() for col in CSV_COLUMNS})
            for row in reader
        ]
