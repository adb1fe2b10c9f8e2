"""
Error kinds raised by the voting core.

Every kind that can reach a client carries the HTTP status and the
public message the API renders as {"error": message}.
"""


class VotingError(Exception):
    status_code = 500
    message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)


class StudentNotFound(VotingError):
    status_code = 404
    message = "Student not found"


class AlreadyVoted(VotingError):
    status_code = 400
    message = "Student has already voted"


class InvalidVote(VotingError):
    status_code = 400
    message = "Invalid vote"


class UpstreamSyncError(VotingError):
    """Durable mirror unreachable or rejected the call. Never shown to voters."""

    status_code = 502
    message = "Durable mirror unavailable"


class LoadError(Exception):
    """Roster source missing or malformed. Fatal at startup."""
