# durable mirror: best-effort write-through + startup reconcile
import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Set

from google.oauth2 import service_account
from googleapiclient.discovery import build

from .config import (
    GOOGLE_SERVICE_ACCOUNT_KEY_FILE,
    GOOGLE_SHEETS_ID,
    SHEET_NAME,
    SYNC_TIMEOUT,
)
from .errors import UpstreamSyncError
from .ledger import VoteLedger
from .models import Vote

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class VoteMirror:
    """
    Append-only external copy of the vote history.
    Implementations are blocking; DurableSync runs them off the event loop.
    """

    enabled = True

    def append(self, vote: Vote) -> None:
        raise NotImplementedError

    def load_all(self) -> List[Vote]:
        raise NotImplementedError


class NullMirror(VoteMirror):
    enabled = False

    def append(self, vote: Vote) -> None:
        return None

    def load_all(self) -> List[Vote]:
        return []


def row_to_vote(row: List[str]) -> Optional[Vote]:
    if len(row) < 6:
        return None
    student_id, name, grade, room, option, ts = (str(c).strip() for c in row[:6])
    try:
        cast_at = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        cast_at = datetime.now(timezone.utc)
    return Vote(
        studentId=student_id,
        studentName=name,
        grade=grade,
        room=room,
        bookCover=option,
        timestamp=cast_at,
    )


class SheetsMirror(VoteMirror):
    """
    Google Sheets backend. Rows are
    [studentId, studentName, grade, room, bookCover, timestamp]
    under a header row.
    """

    def __init__(self, spreadsheet_id: str, service, sheet_name: str = SHEET_NAME):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self._values = service.spreadsheets().values()

    @classmethod
    def from_service_account(cls, spreadsheet_id: str, key_file: str, sheet_name: str = SHEET_NAME) -> "SheetsMirror":
        creds = service_account.Credentials.from_service_account_file(key_file, scopes=SCOPES)
        service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return cls(spreadsheet_id, service, sheet_name)

    def append(self, vote: Vote) -> None:
        try:
            self._values.append(
                spreadsheetId=self.spreadsheet_id,
                range=f"{self.sheet_name}!A:F",
                valueInputOption="RAW",
                body={"values": [vote.to_row()]},
            ).execute()
        except Exception as e:
            raise UpstreamSyncError(f"Sheets append failed: {e}") from e

    def load_all(self) -> List[Vote]:
        try:
            resp = self._values.get(
                spreadsheetId=self.spreadsheet_id,
                range=f"{self.sheet_name}!A2:F",
            ).execute()
        except Exception as e:
            raise UpstreamSyncError(f"Sheets read failed: {e}") from e

        votes = []
        for row in resp.get("values", []):
            vote = row_to_vote(row)
            if vote is not None:
                votes.append(vote)
        return votes


def build_mirror(
    spreadsheet_id: str = GOOGLE_SHEETS_ID,
    key_file: str = GOOGLE_SERVICE_ACCOUNT_KEY_FILE,
) -> VoteMirror:
    """Sheets mirror when fully configured, otherwise the no-op mirror."""
    if not spreadsheet_id or not key_file or not os.path.exists(key_file):
        logger.info("Google Sheets not configured, using local storage only")
        return NullMirror()

    try:
        mirror = SheetsMirror.from_service_account(spreadsheet_id, key_file)
    except Exception as e:
        logger.error(f"Google Sheets configuration error: {e}; using local storage only")
        return NullMirror()

    logger.info("Google Sheets configured")
    return mirror


class DurableSync:
    """
    Fire-and-forget mirroring of accepted votes.
    Each mirror call is bounded by `timeout`; failures are logged and never
    reach the voter or roll back the ledger.
    """

    def __init__(self, mirror: VoteMirror, timeout: float = SYNC_TIMEOUT):
        self.mirror = mirror
        self.timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.mirror.enabled

    async def append(self, vote: Vote) -> bool:
        """Mirror one vote. Returns False when the mirror failed or timed out."""
        if not self.enabled:
            return True
        try:
            await asyncio.wait_for(asyncio.to_thread(self.mirror.append, vote), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Mirror append for {vote.studentId} timed out after {self.timeout}s")
            return False
        except UpstreamSyncError as e:
            logger.warning(f"Mirror append for {vote.studentId} failed: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected mirror error for {vote.studentId}")
            return False
        return True

    def append_in_background(self, vote: Vote) -> asyncio.Task:
        task = asyncio.create_task(self.append(vote))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def reconcile_on_startup(self, ledger: VoteLedger) -> int:
        """
        Hydrate the ledger from the mirror. Any error leaves the ledger as
        it was (empty at startup); never fatal.
        """
        if not self.enabled:
            logger.info("No durable mirror configured, starting with empty votes")
            return 0

        logger.info("Loading existing votes from the durable mirror...")
        try:
            votes = await asyncio.wait_for(asyncio.to_thread(self.mirror.load_all), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Mirror load timed out after {self.timeout}s, starting with empty votes")
            return 0
        except Exception as e:
            logger.warning(f"Could not load existing votes from mirror: {e}; starting with empty votes")
            return 0

        added = ledger.hydrate(votes)
        logger.info(f"Loaded {added} existing votes from mirror")
        return added

    async def drain(self) -> None:
        """Wait for in-flight appends (used at shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
