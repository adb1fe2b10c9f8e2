# result views derived from the ledger; nothing is cached here
from typing import Dict, Iterable

from .ledger import VoteLedger
from .models import ResultsOut, ResultsSummary, TallyUpdate, Vote


def count_by_option(votes: Iterable[Vote]) -> Dict[str, int]:
    results: Dict[str, int] = {}
    for vote in votes:
        results[vote.bookCover] = results.get(vote.bookCover, 0) + 1
    return results


def summarize(ledger: VoteLedger) -> ResultsSummary:
    votes = ledger.all_votes()
    return ResultsSummary(totalVotes=len(votes), results=count_by_option(votes))


def snapshot(ledger: VoteLedger) -> ResultsOut:
    votes = ledger.all_votes()
    return ResultsOut(totalVotes=len(votes), results=count_by_option(votes), voters=votes)


def initial_update(ledger: VoteLedger) -> TallyUpdate:
    """Synthetic event a new observer gets before any live update."""
    snap = snapshot(ledger)
    return TallyUpdate(
        event="initialData",
        totalVotes=snap.totalVotes,
        results=snap.results,
        voters=snap.voters,
    )


def vote_update(ledger: VoteLedger, latest: Vote) -> TallyUpdate:
    summary = summarize(ledger)
    return TallyUpdate(
        event="voteUpdate",
        totalVotes=summary.totalVotes,
        results=summary.results,
        latestVote=latest,
    )
