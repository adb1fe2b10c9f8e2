import asyncio
import contextlib
import logging

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from .errors import AlreadyVoted
from .models import NameCheckIn, ResultsOut, Voter, VoteIn
from .results import snapshot, vote_update
from .roster import name_matches

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/student/{student_id}")
def get_student(student_id: str, request: Request) -> Voter:
    voter = request.app.state.roster.lookup(student_id)
    if request.app.state.ledger.has_voted(student_id):
        raise AlreadyVoted()
    return voter


@router.post("/api/student/{student_id}/confirm")
def confirm_student(student_id: str, body: NameCheckIn, request: Request):
    """Advisory name check for the confirm step; voting never depends on it."""
    voter = request.app.state.roster.lookup(student_id)
    return {"match": name_matches(voter, body.name)}


@router.post("/api/vote")
async def vote(v: VoteIn, request: Request):
    state = request.app.state
    cast = state.ledger.cast_vote(v)

    # mirror and fan-out never delay or undo the reply
    state.sync.append_in_background(cast)
    state.channel.publish(vote_update(state.ledger, cast))

    return {"success": True, "message": "Vote recorded successfully"}


@router.get("/api/results")
def results(request: Request) -> ResultsOut:
    return snapshot(request.app.state.ledger)


@router.get("/status")
def status(request: Request):
    state = request.app.state
    return {
        "students": len(state.roster),
        "votes": len(state.ledger),
        "observers": len(state.channel),
        "mirror": "enabled" if state.sync.enabled else "disabled",
    }


async def stop_forwarder(task: asyncio.Task) -> None:
    """Cancel and reap a forwarding task, including one that died on a failed send."""
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await task


@router.websocket("/ws")
async def observe(websocket: WebSocket):
    """
    Live tally feed for the admin dashboard: one initialData event, then a
    voteUpdate per accepted vote. Incoming messages are ignored.
    """
    await websocket.accept()
    subscription = websocket.app.state.channel.subscribe()
    logger.info("Admin connected")

    async def forward():
        async for update in subscription:
            await websocket.send_json(update.model_dump(mode="json", exclude_none=True))

    sender = asyncio.create_task(forward())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Admin disconnected")
    finally:
        subscription.close()
        await stop_forwarder(sender)
