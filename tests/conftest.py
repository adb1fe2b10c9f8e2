"""
Shared fixtures: an in-memory roster, a controllable fake mirror and a
TestClient bound to an app built from them.
"""
import time

import pytest
from fastapi.testclient import TestClient

from bookvote.errors import UpstreamSyncError
from bookvote.main import create_app
from bookvote.mirror import VoteMirror
from bookvote.models import Voter
from bookvote.roster import Roster

OPTIONS = ["1", "2", "3", "4", "5"]


class FakeMirror(VoteMirror):
    def __init__(self, stored=None, fail=False, delay=0.0):
        self.stored = list(stored or [])
        self.appended = []
        self.fail = fail
        self.delay = delay

    def append(self, vote):
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise UpstreamSyncError("mirror unreachable")
        self.appended.append(vote)

    def load_all(self):
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise UpstreamSyncError("mirror unreachable")
        return list(self.stored)


@pytest.fixture
def fake_mirror_cls():
    return FakeMirror


@pytest.fixture
def roster():
    return Roster([
        Voter(id="20552", name="เด็กชายทดสอบ ทดลอง", grade="3", room="1"),
        Voter(id="20553", name="เด็กหญิงสมศรี ใจดี", grade="3", room="2"),
        Voter(id="20554", name="นายสมชาย รักเรียน", grade="4", room="1"),
        Voter(id="20555", name="นางสาวมาลี สวยงาม", grade="5", room="3"),
    ])


@pytest.fixture
def mirror():
    return FakeMirror()


@pytest.fixture
def app(roster, mirror):
    return create_app(roster=roster, mirror=mirror, options=OPTIONS, public_dir=None)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def vote_body(student_id="20552", option="2", **extra):
    body = {
        "studentId": student_id,
        "studentName": "ทดสอบ ทดลอง",
        "grade": "3",
        "room": "1",
        "bookCover": option,
    }
    body.update(extra)
    return body
