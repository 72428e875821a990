"""
Sample data and streaming statistics over generated records.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from directory_pipeline.domain.models import Gender, Record


def generate_sample_records() -> List[Record]:
    """Small fixed dataset for development and smoke checks."""
    rows = [
        ("Adams John Michael", "1985-03-15", Gender.MALE),
        ("Brown Sarah Elizabeth", "1990-07-22", Gender.FEMALE),
        ("Foster David Alexander", "1988-11-03", Gender.MALE),
        ("Garcia Maria Rose", "1992-05-18", Gender.FEMALE),
        ("Fisher Robert James", "1987-09-12", Gender.MALE),
        ("Wilson Jennifer Anne", "1991-01-30", Gender.FEMALE),
        ("Fleming Michael Thomas", "1989-06-08", Gender.MALE),
        ("Taylor Emily Grace", "1993-12-14", Gender.FEMALE),
        ("Freeman Christopher Lee", "1986-04-27", Gender.MALE),
        ("Anderson Lisa Marie", "1994-08-09", Gender.FEMALE),
    ]
    return [
        Record(full_name=name, birth_date=date.fromisoformat(born), gender=gender)
        for name, born, gender in rows
    ]


@dataclass
class GenerationStats:
    total: int = 0
    male_count: int = 0
    female_count: int = 0
    duplicate_keys: int = 0
    surname_initials: Dict[str, int] = field(default_factory=dict)
    age_groups: Dict[str, int] = field(default_factory=dict)


def analyze_records(
    batches: Iterable[Iterable[Record]],
    today: Optional[date] = None,
    track_duplicates: bool = True,
) -> GenerationStats:
    """
    Aggregate statistics over a stream of batches without keeping the records.

    Duplicate detection keeps one key per distinct record; disable it for very
    large streams where that set would dominate memory.
    """
    today = today or date.today()
    initials: Counter = Counter()
    ages: Counter = Counter()
    seen: Set[Tuple[str, date]] = set()
    stats = GenerationStats()

    for batch in batches:
        for record in batch:
            stats.total += 1
            if record.gender == Gender.MALE:
                stats.male_count += 1
            else:
                stats.female_count += 1

            initials[record.surname[:1].upper()] += 1

            decade = (record.age(today) // 10) * 10
            ages[f"{decade}-{decade + 9}"] += 1

            if track_duplicates:
                if record.key in seen:
                    stats.duplicate_keys += 1
                else:
                    seen.add(record.key)

    stats.surname_initials = dict(sorted(initials.items()))
    stats.age_groups = dict(sorted(ages.items()))
    return stats


__all__ = ["generate_sample_records", "analyze_records", "GenerationStats"]
