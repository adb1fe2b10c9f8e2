import asyncio

import pytest

from bookvote.broadcast import BroadcastChannel
from bookvote.ledger import VoteLedger
from bookvote.models import TallyUpdate, VoteIn
from bookvote.results import initial_update, vote_update


def update(total):
    return TallyUpdate(event="voteUpdate", totalVotes=total, results={"1": total})


async def received(sub, timeout=0.05):
    """Totals of every event already queued for sub."""
    totals = []
    while True:
        try:
            event = await asyncio.wait_for(sub.__anext__(), timeout)
        except asyncio.TimeoutError:
            return totals
        totals.append(event.totalVotes)


@pytest.mark.asyncio
async def test_late_observer_gets_current_state(roster):
    ledger = VoteLedger(roster, ["1", "2", "3"])
    channel = BroadcastChannel(lambda: initial_update(ledger))
    for student_id, option in [("20552", "1"), ("20553", "1"), ("20554", "3")]:
        vote = ledger.cast_vote(VoteIn(studentId=student_id, bookCover=option))
        channel.publish(vote_update(ledger, vote))

    sub = channel.subscribe()
    first = await asyncio.wait_for(sub.__anext__(), 1.0)

    assert first.totalVotes == 3
    assert first.results == {"1": 2, "3": 1}
    assert await received(sub) == []


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber():
    channel = BroadcastChannel(lambda: update(0))
    subs = [channel.subscribe() for _ in range(3)]

    assert channel.publish(update(1)) == 3

    for sub in subs:
        assert await received(sub) == [0, 1]


@pytest.mark.asyncio
async def test_closed_subscription_stops_receiving():
    channel = BroadcastChannel(lambda: update(0))
    keep = channel.subscribe()
    gone = channel.subscribe()

    gone.close()
    gone.close()

    assert len(channel) == 1
    assert channel.publish(update(1)) == 1
    assert await received(keep) == [0, 1]
    assert await received(gone) == [0]


@pytest.mark.asyncio
async def test_slow_observer_keeps_latest_state():
    channel = BroadcastChannel(lambda: update(0), max_pending=2)
    sub = channel.subscribe()

    for total in range(1, 6):
        channel.publish(update(total))

    assert await received(sub) == [4, 5]


@pytest.mark.asyncio
async def test_subscription_is_async_iterable():
    channel = BroadcastChannel(lambda: update(0))
    sub = channel.subscribe()
    channel.publish(update(1))

    seen = []
    async for event in sub:
        seen.append(event.totalVotes)
        if len(seen) == 2:
            break

    assert seen == [0, 1]
