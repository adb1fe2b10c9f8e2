from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Voter(BaseModel):
    """One roster row. Never mutated after load."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., examples=["20552"])
    name: str = Field(..., examples=["เด็กชายทดสอบ ทดลอง"])
    grade: str = Field(..., examples=["3"])
    room: str = Field(..., examples=["1"])


class VoteIn(BaseModel):
    studentId: str = Field(..., min_length=1, examples=["20552"])
    studentName: str = Field("", examples=["ทดสอบ ทดลอง"])
    grade: Optional[str] = None
    room: Optional[str] = None
    bookCover: str = Field(..., min_length=1, examples=["2"])
    timestamp: Optional[datetime] = None


class Vote(BaseModel):
    """
    Accepted vote, as stored in the ledger and sent to observers.
    bookCover is the selected option; timestamp is the cast time.
    """

    model_config = ConfigDict(frozen=True)

    studentId: str
    studentName: str
    grade: str
    room: str
    bookCover: str
    timestamp: datetime

    def to_row(self) -> List[str]:
        return [
            self.studentId,
            self.studentName,
            self.grade,
            self.room,
            self.bookCover,
            self.timestamp.isoformat(),
        ]


class NameCheckIn(BaseModel):
    name: str


class ResultsSummary(BaseModel):
    totalVotes: int
    results: Dict[str, int]


class ResultsOut(ResultsSummary):
    voters: List[Vote]


class TallyUpdate(BaseModel):
    """
    Full-state event pushed to observers.
    initialData carries the voter list, voteUpdate carries the vote just cast.
    """

    event: str
    totalVotes: int
    results: Dict[str, int]
    latestVote: Optional[Vote] = None
    voters: Optional[List[Vote]] = None
