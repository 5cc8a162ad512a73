"""
Engine errors. Every one is a validation failure returned to the caller;
none is retried and none leaves partial state behind.
"""


class EngineError(Exception):
    """Base class; `code` is the stable identifier exposed to API clients."""

    code = "ENGINE_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InsufficientTeams(EngineError):
    code = "INSUFFICIENT_TEAMS"


class InvalidLegMode(EngineError):
    code = "INVALID_LEG_MODE"


class DuplicateTeamSlots(EngineError):
    code = "DUPLICATE_TEAM_SLOTS"


class InvalidDuration(EngineError):
    code = "INVALID_DURATION"


class MissingChampion(EngineError):
    code = "MISSING_CHAMPION"


class TeamNotFound(EngineError):
    code = "TEAM_NOT_FOUND"
    status_code = 404


class MatchNotFound(EngineError):
    code = "MATCH_NOT_FOUND"
    status_code = 404


class ConcurrentModification(EngineError):
    code = "CONCURRENT_MODIFICATION"
    status_code = 409


class SeasonNotFound(EngineError):
    code = "SEASON_NOT_FOUND"
    status_code = 404


class TeamInUse(EngineError):
    code = "TEAM_IN_USE"


class DuplicateTeamName(EngineError):
    code = "DUPLICATE_TEAM_NAME"


class TournamentNotFound(EngineError):
    code = "TOURNAMENT_NOT_FOUND"
    status_code = 404
