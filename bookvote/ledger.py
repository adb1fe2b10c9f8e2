# in-memory vote ledger: the runtime source of truth
import logging
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Set

from .errors import AlreadyVoted, InvalidVote
from .models import Vote, VoteIn
from .roster import Roster

logger = logging.getLogger(__name__)


class VoteLedger:
    """
    Ordered vote history plus the set of ids that already voted.

    Both structures change together inside one critical section with no
    await in it, so concurrent casts for the same id yield exactly one
    accepted vote. The lock also covers handlers run in the threadpool.
    """

    def __init__(self, roster: Roster, options: Iterable[str]):
        self.roster = roster
        self.options = frozenset(options)
        if not self.options:
            raise ValueError("At least one valid option is required")

        self._votes: List[Vote] = []
        self._voted: Set[str] = set()
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._votes)

    def has_voted(self, student_id: str) -> bool:
        return student_id in self._voted

    def build_vote(self, v: VoteIn) -> Vote:
        """
        Validate a request against the roster and options, without recording it.
        Grade and room come from the roster record.
        """
        voter = self.roster.lookup(v.studentId)
        if v.bookCover not in self.options:
            raise InvalidVote(f"Unknown option {v.bookCover!r}")

        return Vote(
            studentId=voter.id,
            studentName=v.studentName.strip() or voter.name,
            grade=voter.grade,
            room=voter.room,
            bookCover=v.bookCover,
            timestamp=v.timestamp or datetime.now(timezone.utc),
        )

    def cast_vote(self, v: VoteIn) -> Vote:
        """
        Insert-if-absent keyed on studentId.
        Raises StudentNotFound, InvalidVote or AlreadyVoted; the ledger is
        unchanged in every failure case.
        """
        vote = self.build_vote(v)
        with self._lock:
            if vote.studentId in self._voted:
                raise AlreadyVoted()
            self._votes.append(vote)
            self._voted.add(vote.studentId)
            self._counts[vote.bookCover] += 1

        logger.info(f"Vote accepted: student {vote.studentId} -> option {vote.bookCover}")
        return vote

    def hydrate(self, votes: Iterable[Vote]) -> int:
        """
        Load votes recovered from the durable mirror. The first vote per id
        wins and rows with an unknown option are skipped.
        Returns how many votes were added.
        """
        added = 0
        with self._lock:
            for vote in votes:
                if vote.studentId in self._voted:
                    logger.warning(f"Skipping duplicate mirrored vote for {vote.studentId}")
                    continue
                if vote.bookCover not in self.options:
                    logger.warning(
                        f"Skipping mirrored vote for {vote.studentId} with unknown option {vote.bookCover!r}"
                    )
                    continue
                if vote.studentId not in self.roster:
                    logger.info(f"Keeping mirrored vote for {vote.studentId}, who is not in the current roster")
                self._votes.append(vote)
                self._voted.add(vote.studentId)
                self._counts[vote.bookCover] += 1
                added += 1
        return added

    def tally(self) -> Dict[str, int]:
        """Per-option counts; options with no votes are left out."""
        with self._lock:
            return dict(self._counts)

    def all_votes(self) -> List[Vote]:
        with self._lock:
            return list(self._votes)
