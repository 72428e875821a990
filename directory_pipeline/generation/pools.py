"""
Bounded reference pools for synthetic employee names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from directory_pipeline.domain.models import Gender

MALE_FIRST_NAMES = (
    "James", "John", "Robert", "Michael", "William", "David", "Richard", "Thomas",
    "Christopher", "Daniel", "Paul", "Mark", "Donald", "Steven", "Kenneth",
    "Andrew", "Frank", "Gregory", "Raymond", "Alexander", "Patrick", "Jack",
    "Dennis", "Jerry", "Tyler", "Aaron", "Jose", "Henry", "Adam", "Douglas",
)

FEMALE_FIRST_NAMES = (
    "Mary", "Patricia", "Jennifer", "Linda", "Elizabeth", "Barbara", "Susan",
    "Jessica", "Sarah", "Karen", "Nancy", "Lisa", "Betty", "Helen", "Sandra",
    "Donna", "Carol", "Ruth", "Sharon", "Michelle", "Laura", "Kimberly",
    "Deborah", "Dorothy", "Emily", "Grace", "Maria", "Anna", "Rose", "Julia",
)

MIDDLE_NAMES = (
    "Alexander", "Michael", "James", "William", "David", "John", "Robert",
    "Marie", "Anne", "Elizabeth", "Grace", "Rose", "Joy", "Hope",
    "Lee", "Ray", "Lynn", "Jean", "Ann", "May", "Sue", "Jane",
)

# Seven surnames per initial, except F which carries extra entries for special records.
LAST_NAMES = (
    "Anderson", "Adams", "Allen", "Alexander", "Armstrong", "Arnold", "Austin",
    "Brown", "Baker", "Bell", "Bennett", "Brooks", "Butler", "Barnes",
    "Clark", "Collins", "Cook", "Cooper", "Carter", "Campbell", "Cox",
    "Davis", "Dawson", "Dixon", "Duncan", "Dunn", "Douglas", "Day",
    "Evans", "Edwards", "Ellis", "Elliott", "Erickson", "Estrada", "Ewing",
    "Foster", "Fisher", "Flores", "Freeman", "Ferguson", "Ford", "Fox",
    "Franklin", "French", "Fuller", "Flynn", "Farmer", "Fleming", "Fields",
    "Garcia", "Gonzalez", "Green", "Griffin", "Gray", "Graham", "Grant",
    "Harris", "Hall", "Hill", "Howard", "Hughes", "Henderson", "Hayes",
    "Ingram", "Irwin", "Isaac", "Ivanov", "Ibrahim", "Iglesias", "Imai",
    "Johnson", "Jones", "Jackson", "James", "Jenkins", "Jordan", "Joyce",
    "King", "Kelly", "Kim", "Knight", "Kumar", "Kennedy", "Klein",
    "Lee", "Lewis", "Lopez", "Long", "Lynch", "Lawrence", "Lucas",
    "Martin", "Martinez", "Mitchell", "Murphy", "Morris", "Morgan", "Moore",
    "Nelson", "Newman", "Nguyen", "Nixon", "Norman", "Nash", "Newton",
    "O'Brien", "O'Connor", "Oliver", "Olson", "Owen", "Ortiz", "Osborne",
    "Parker", "Patterson", "Perez", "Peterson", "Phillips", "Powell", "Price",
    "Quinn", "Qualls", "Quick", "Quintero", "Quentin", "Quarles", "Queen",
    "Robinson", "Rodriguez", "Roberts", "Reed", "Ross", "Russell", "Rogers",
    "Smith", "Scott", "Stewart", "Sullivan", "Sanders", "Simmons", "Stone",
    "Thompson", "Taylor", "Thomas", "Turner", "Torres", "Tucker", "Tyler",
    "Underwood", "Upton", "Urquhart", "Ulrich", "Urban", "Usher", "Unger",
    "Vargas", "Vaughn", "Vega", "Vincent", "Vogt", "Valdez", "Valencia",
    "White", "Williams", "Wilson", "Wright", "Walker", "Washington", "Watson",
    "Xavier", "Xiong", "Xu", "Xander", "Xerxes", "Xiao", "Ximenes",
    "Young", "York", "Yang", "Yates", "Yeager", "Yoder", "Yuen",
    "Zhang", "Zimmerman", "Zuniga", "Ziegler", "Zamora", "Zhao", "Zulu",
)


@dataclass(frozen=True)
class NamePools:
    first_names: Dict[Gender, Tuple[str, ...]]
    middle_names: Tuple[str, ...]
    last_names: Tuple[str, ...]

    @classmethod
    def default(cls) -> "NamePools":
        return cls(
            first_names={Gender.MALE: MALE_FIRST_NAMES, Gender.FEMALE: FEMALE_FIRST_NAMES},
            middle_names=MIDDLE_NAMES,
            last_names=LAST_NAMES,
        )

    def surnames_starting_with(self, letter: str) -> Tuple[str, ...]:
        letter = letter.lower()
        return tuple(name for name in self.last_names if name[:1].lower() == letter)

    def surnames_not_starting_with(self, letter: str) -> Tuple[str, ...]:
        letter = letter.lower()
        return tuple(name for name in self.last_names if name[:1].lower() != letter)


__all__ = [
    "NamePools",
    "MALE_FIRST_NAMES",
    "FEMALE_FIRST_NAMES",
    "MIDDLE_NAMES",
    "LAST_NAMES",
]
