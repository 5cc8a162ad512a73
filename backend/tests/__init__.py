# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from tournament_engine.models.knockout_match import KnockoutMatch  # noqa: F401
from tournament_engine.models.match import Match  # noqa: F401
from tournament_engine.models.match_comment import MatchComment  # noqa: F401
from tournament_engine.models.schedule_settings import ScheduleSettingsRecord  # noqa: F401
from tournament_engine.models.season_history import SeasonHistoryRecord  # noqa: F401
from tournament_engine.models.team import Team  # noqa: F401
from tournament_engine.models.tournament import Tournament  # noqa: F401
