import logging
import os
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api import router
from .broadcast import BroadcastChannel
from .config import (
    HOST,
    LOG_LEVEL,
    PORT,
    PUBLIC_DIR,
    ROSTER_PATH,
    SYNC_TIMEOUT,
    VALID_OPTIONS,
    setup_logging,
)
from .errors import VotingError
from .ledger import VoteLedger
from .mirror import DurableSync, VoteMirror, build_mirror
from .results import initial_update
from .roster import Roster

logger = logging.getLogger(__name__)


def create_app(
    roster: Optional[Roster] = None,
    mirror: Optional[VoteMirror] = None,
    options: Optional[Iterable[str]] = None,
    sync_timeout: float = SYNC_TIMEOUT,
    public_dir: Optional[str] = PUBLIC_DIR,
) -> FastAPI:
    """
    Build the voting app. Anything not injected is taken from the
    environment at startup; a roster LoadError aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: logging, roster, ledger, mirror reconcile
        setup_logging(LOG_LEVEL)
        app.state.roster = roster if roster is not None else Roster.load(ROSTER_PATH)
        app.state.ledger = VoteLedger(app.state.roster, options if options is not None else VALID_OPTIONS)
        app.state.sync = DurableSync(mirror if mirror is not None else build_mirror(), timeout=sync_timeout)
        await app.state.sync.reconcile_on_startup(app.state.ledger)
        app.state.channel = BroadcastChannel(lambda: initial_update(app.state.ledger))
        logger.info(f"Accepting votes for options {sorted(app.state.ledger.options)}")
        yield
        # Shutdown: let pending mirror writes finish
        await app.state.sync.drain()

    app = FastAPI(title="Book Cover Vote", lifespan=lifespan)

    @app.exception_handler(VotingError)
    async def voting_error_handler(request: Request, exc: VotingError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = sorted({".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()})
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {', '.join(fields)}"})

    app.include_router(router)

    if public_dir and os.path.isdir(public_dir):
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run("bookvote.main:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
