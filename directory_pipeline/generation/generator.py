"""
Lazy synthetic record generation.

`RecordGenerator` yields fixed-size batches of employee records without ever
materializing the full dataset. A controlled number of "special" records (male
employees whose surname starts with a configured letter) is spread uniformly
through the stream rather than appended as a block, so downstream inserts see
a realistic distribution.

Placement uses sequential sampling without replacement: at each position the
next record is special with probability ``remaining_special / remaining_total``
(and likewise for the two ordinary genders). That yields a uniformly random
arrangement of the exact requested counts while only the current batch lives
in memory.

Usage:
    generator = RecordGenerator(base_count=1_000_000, special_count=100, batch_size=1000)
    for batch in generator:
        inserter.insert_batch(batch)
"""

from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Iterator, List, Optional, Tuple

from directory_pipeline.domain.models import Gender, Record
from directory_pipeline.errors import ConfigurationError
from directory_pipeline.generation.pools import NamePools
from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)

BIRTH_DATE_WINDOW: Tuple[date, date] = (date(1950, 1, 1), date(2005, 12, 31))


def is_special(record: Record, letter: str) -> bool:
    """The rare predicate special records are built to satisfy."""
    return record.gender == Gender.MALE and record.surname[:1].lower() == letter.lower()


class RecordGenerator:
    """
    Finite, lazily produced sequence of record batches.

    Parameters
    ----------
    base_count : int
        Ordinary records, split as evenly as possible between the two genders.
    special_count : int
        Records forced to satisfy `is_special(record, special_letter)`.
    batch_size : int
        Records per yielded batch (the last batch may be shorter).
    special_letter : str
        Surname initial of special records.
    seed : int | None
        RNG seed; a fixed seed reproduces field values across restarts.
    """

    def __init__(
        self,
        base_count: int,
        special_count: int,
        batch_size: int,
        special_letter: str = "F",
        seed: Optional[int] = None,
        pools: Optional[NamePools] = None,
        birth_window: Tuple[date, date] = BIRTH_DATE_WINDOW,
    ) -> None:
        if base_count < 0 or special_count < 0:
            raise ConfigurationError(
                f"Record counts must not be negative (base={base_count}, special={special_count})"
            )
        if base_count + special_count <= 0:
            raise ConfigurationError("At least one record must be requested")
        if batch_size <= 0:
            raise ConfigurationError(f"Batch size must be positive, got {batch_size}")
        if len(special_letter) != 1 or not special_letter.isalpha():
            raise ConfigurationError(f"Special letter must be a single letter, got {special_letter!r}")
        if birth_window[0] > birth_window[1]:
            raise ConfigurationError("Birth date window start is after its end")

        self.base_count = base_count
        self.special_count = special_count
        self.batch_size = batch_size
        self.special_letter = special_letter
        self.seed = seed
        self.pools = pools or NamePools.default()
        self.birth_window = birth_window

        self.male_count = base_count // 2
        self.female_count = base_count - self.male_count

        self._special_surnames = self.pools.surnames_starting_with(special_letter)
        self._ordinary_male_surnames = self.pools.surnames_not_starting_with(special_letter)
        if special_count and not self._special_surnames:
            raise ConfigurationError(f"No surname in the pool starts with {special_letter!r}")
        if self.male_count and not self._ordinary_male_surnames:
            raise ConfigurationError(
                f"Every surname in the pool starts with {special_letter!r}; "
                "ordinary male records would match the special predicate"
            )

    @property
    def total(self) -> int:
        return self.base_count + self.special_count

    def __iter__(self) -> Iterator[List[Record]]:
        return self.batches()

    def batches(self) -> Iterator[List[Record]]:
        """Return a fresh lazy iterator over the batches."""
        log.debug(
            "[GENERATE START] %s records (%s special)",
            self.total,
            self.special_count,
            extra={"total": self.total, "special": self.special_count, "batch_size": self.batch_size},
        )
        rng = random.Random(self.seed)
        special_left = self.special_count
        male_left = self.male_count
        female_left = self.female_count

        batch: List[Record] = []
        for remaining in range(self.total, 0, -1):
            draw = rng.randrange(remaining)
            if draw < special_left:
                special_left -= 1
                record = self._make(rng, Gender.MALE, self._special_surnames)
            elif draw < special_left + male_left:
                male_left -= 1
                record = self._make(rng, Gender.MALE, self._ordinary_male_surnames)
            else:
                female_left -= 1
                record = self._make(rng, Gender.FEMALE, self.pools.last_names)

            batch.append(record)
            if len(batch) == self.batch_size:
                yield batch
                batch = []

        if batch:
            yield batch

    def _make(self, rng: random.Random, gender: Gender, surnames) -> Record:
        first = rng.choice(self.pools.first_names[gender])
        middle = rng.choice(self.pools.middle_names)
        last = rng.choice(surnames)
        return Record(
            full_name=f"{last} {first} {middle}",
            birth_date=self._birth_date(rng),
            gender=gender,
        )

    def _birth_date(self, rng: random.Random) -> date:
        start, end = self.birth_window
        return start + timedelta(days=rng.randint(0, (end - start).days))


__all__ = ["RecordGenerator", "is_special", "BIRTH_DATE_WINDOW"]
