import pytest

from bookvote.errors import LoadError, StudentNotFound
from bookvote.models import Voter
from bookvote.roster import Roster, name_matches

SCHOOL_CSV = (
    "UserID,ชื่อ - สกุล,ชั้นมัธยม,ห้องเรียน\n"
    "20552,เด็กชายทดสอบ ทดลอง,3,1\n"
    "20553,เด็กหญิงสมศรี ใจดี,3,2\n"
)


def write(tmp_path, text, name="idstudent.csv", encoding="utf-8"):
    path = tmp_path / name
    path.write_text(text, encoding=encoding)
    return str(path)


def test_load_school_export(tmp_path):
    roster = Roster.load(write(tmp_path, SCHOOL_CSV))

    assert len(roster) == 2
    assert roster.lookup("20552") == Voter(id="20552", name="เด็กชายทดสอบ ทดลอง", grade="3", room="1")


def test_load_with_bom_and_plain_headers(tmp_path):
    path = write(tmp_path, "id,name,grade,room\n30001,Jane Doe,6,2\n", encoding="utf-8-sig")

    roster = Roster.load(path)

    assert "30001" in roster
    assert roster.lookup("30001").room == "2"


def test_blank_id_rows_are_skipped(tmp_path):
    roster = Roster.load(write(tmp_path, SCHOOL_CSV + ",ไม่มีรหัส,3,1\n"))
    assert len(roster) == 2


def test_missing_file_is_load_error(tmp_path):
    with pytest.raises(LoadError):
        Roster.load(str(tmp_path / "nope.csv"))


def test_missing_column_is_load_error(tmp_path):
    with pytest.raises(LoadError, match="ห้องเรียน"):
        Roster.load(write(tmp_path, "UserID,ชื่อ - สกุล,ชั้นมัธยม\n20552,ก,3\n"))


def test_empty_roster_is_load_error(tmp_path):
    with pytest.raises(LoadError):
        Roster.load(write(tmp_path, "UserID,ชื่อ - สกุล,ชั้นมัธยม,ห้องเรียน\n"))


def test_empty_file_is_load_error(tmp_path):
    with pytest.raises(LoadError):
        Roster.load(write(tmp_path, ""))


def test_non_utf8_roster_is_load_error(tmp_path):
    path = write(tmp_path, SCHOOL_CSV, encoding="cp874")

    with pytest.raises(LoadError, match="not UTF-8"):
        Roster.load(path)


def test_duplicate_ids_are_rejected(tmp_path):
    with pytest.raises(LoadError, match="20552"):
        Roster.load(write(tmp_path, SCHOOL_CSV + "20552,ซ้ำ,3,1\n"))


def test_lookup_unknown(roster):
    with pytest.raises(StudentNotFound):
        roster.lookup("99999")


@pytest.mark.parametrize("typed, expected", [
    ("ทดสอบ ทดลอง", True),
    ("  ทดสอบ ทดลอง ", True),
    ("เด็กชายทดสอบ ทดลอง", True),
    ("ทดสอบ", False),
    ("", False),
])
def test_name_matches_strips_honorific(roster, typed, expected):
    assert name_matches(roster.lookup("20552"), typed) is expected


def test_name_matches_ignores_case():
    voter = Voter(id="30001", name="Jane Doe", grade="6", room="2")
    assert name_matches(voter, "jane doe")
