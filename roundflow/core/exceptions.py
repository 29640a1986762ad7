"""
Exception hierarchy for the round-transition service.

Everything raised on purpose derives from RoundFlowError so the API layer
can translate it in one place.
"""


class RoundFlowError(Exception):
    """Base class for all service errors."""
    pass


# ============ Session ============

class SessionNotFound(RoundFlowError):
    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Game {session_id} not found")


class SessionAlreadyExists(RoundFlowError):
    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Game {session_id} already exists")


class InvalidSessionConfig(RoundFlowError):
    """Table limits that can never produce a valid round."""
    pass


class StaleSession(RoundFlowError):
    """A save raced another writer; the stored version moved on."""
    def __init__(self, session_id, expected_version, actual_version):
        self.session_id = session_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Game {session_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


# ============ Readiness ============

class PreconditionViolation(RoundFlowError):
    """Readiness was evaluated without the data it needs."""
    pass


# ============ Players ============

class PlayerAlreadySeated(RoundFlowError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is already seated")


class PlayerAlreadyQueued(RoundFlowError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is already waiting for a seat")


class PlayerNotSeated(RoundFlowError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is not seated")
