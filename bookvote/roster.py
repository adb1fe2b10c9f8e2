# eligible voters, loaded once from the school CSV export
import csv
import logging
import re
from typing import Dict, Iterable

from .errors import LoadError, StudentNotFound
from .models import Voter

logger = logging.getLogger(__name__)

# field -> accepted header names (school export first)
COLUMNS = {
    "id": ("UserID", "id"),
    "name": ("ชื่อ - สกุล", "name"),
    "grade": ("ชั้นมัธยม", "grade"),
    "room": ("ห้องเรียน", "room"),
}

_HONORIFIC = re.compile(r"^(เด็ก(ชาย|หญิง)|นาย|นางสาว)\s*")


def _resolve_columns(headers: Iterable[str]) -> Dict[str, str]:
    present = {h.strip(): h for h in headers if h is not None}
    resolved = {}
    for field, names in COLUMNS.items():
        for name in names:
            if name in present:
                resolved[field] = present[name]
                break
        else:
            raise LoadError(f"Roster is missing the {names[0]!r} column")
    return resolved


class Roster:
    def __init__(self, voters: Iterable[Voter]):
        self._voters: Dict[str, Voter] = {}
        for voter in voters:
            if voter.id in self._voters:
                raise LoadError(f"Duplicate student id {voter.id!r} in roster")
            self._voters[voter.id] = voter

    @classmethod
    def load(cls, path: str) -> "Roster":
        """
        Read the roster CSV. Raises LoadError if the file is missing,
        lacks a required column, is not UTF-8, repeats an id or has no rows.
        """
        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f)
                if reader.fieldnames is None:
                    raise LoadError(f"Roster {path} is empty")
                cols = _resolve_columns(reader.fieldnames)
                voters = []
                for row in reader:
                    student_id = (row.get(cols["id"]) or "").strip()
                    if not student_id:
                        continue
                    voters.append(
                        Voter(
                            id=student_id,
                            name=(row.get(cols["name"]) or "").strip(),
                            grade=(row.get(cols["grade"]) or "").strip(),
                            room=(row.get(cols["room"]) or "").strip(),
                        )
                    )
        except OSError as e:
            raise LoadError(f"Cannot read roster {path}: {e}") from e
        except csv.Error as e:
            raise LoadError(f"Malformed roster {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise LoadError(f"Roster {path} is not UTF-8: {e}") from e

        if not voters:
            raise LoadError(f"Roster {path} has no students")

        roster = cls(voters)
        logger.info(f"Loaded {len(roster)} students from {path}")
        return roster

    def __len__(self) -> int:
        return len(self._voters)

    def __contains__(self, student_id: str) -> bool:
        return student_id in self._voters

    def lookup(self, student_id: str) -> Voter:
        voter = self._voters.get(student_id)
        if voter is None:
            raise StudentNotFound()
        return voter


def name_matches(voter: Voter, name: str) -> bool:
    """
    Advisory identity check for the confirm step: the typed name must equal
    the roster name, with or without its honorific, ignoring case.
    """
    full = voter.name.strip()
    typed = name.strip().casefold()
    return typed in (full.casefold(), _HONORIFIC.sub("", full).casefold())
