from tournament_engine.models.knockout_match import KnockoutMatch
from tournament_engine.models.match import Match
from tournament_engine.models.match_comment import MatchComment
from tournament_engine.models.schedule_settings import ScheduleSettingsRecord
from tournament_engine.models.season_history import SeasonHistoryRecord
from tournament_engine.models.team import Team
from tournament_engine.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "Match",
    "KnockoutMatch",
    "ScheduleSettingsRecord",
    "SeasonHistoryRecord",
    "MatchComment",
]
