"""
Read views over games: per-user and per-commander summaries.

The views expose raw counts and averages only. Rates are derived in Python
so rounding happens exactly once.
"""
from sqlalchemy import DDL, Date, Float, Integer, String, event, table, column

from edh_stats.db.base import Base
from edh_stats.models.commander import COLORS_TYPE

USER_STATS_SQL = """
CREATE VIEW user_stats AS
SELECT
    u.id AS user_id,
    u.username AS username,
    (SELECT COUNT(*) FROM commanders c WHERE c.user_id = u.id) AS total_commanders,
    (SELECT COUNT(*) FROM games g WHERE g.user_id = u.id) AS total_games,
    (SELECT COUNT(*) FROM games g WHERE g.user_id = u.id AND g.won) AS total_wins,
    (SELECT AVG(g.rounds) FROM games g WHERE g.user_id = u.id) AS avg_rounds,
    (SELECT MAX(g.date) FROM games g WHERE g.user_id = u.id) AS last_game_date
FROM users u
"""

COMMANDER_STATS_SQL = """
CREATE VIEW commander_stats AS
SELECT
    c.id AS commander_id,
    c.name AS name,
    c.colors AS colors,
    c.user_id AS user_id,
    (SELECT COUNT(*) FROM games g WHERE g.commander_id = c.id) AS total_games,
    (SELECT COUNT(*) FROM games g WHERE g.commander_id = c.id AND g.won) AS total_wins,
    (SELECT AVG(g.rounds) FROM games g WHERE g.commander_id = c.id) AS avg_rounds,
    (SELECT COUNT(*) FROM games g WHERE g.commander_id = c.id AND g.starting_player_won) AS starting_player_wins,
    (SELECT COUNT(*) FROM games g WHERE g.commander_id = c.id AND g.sol_ring_turn_one_won) AS sol_ring_wins,
    (SELECT MAX(g.date) FROM games g WHERE g.commander_id = c.id) AS last_played
FROM commanders c
"""

for _name, _sql in (("user_stats", USER_STATS_SQL), ("commander_stats", COMMANDER_STATS_SQL)):
    event.listen(Base.metadata, "after_create", DDL(f"DROP VIEW IF EXISTS {_name}"))
    event.listen(Base.metadata, "after_create", DDL(_sql))
    event.listen(Base.metadata, "before_drop", DDL(f"DROP VIEW IF EXISTS {_name}"))


# Selectable handles for the views
user_stats = table(
    "user_stats",
    column("user_id", Integer),
    column("username", String),
    column("total_commanders", Integer),
    column("total_games", Integer),
    column("total_wins", Integer),
    column("avg_rounds", Float),
    column("last_game_date", Date),
)

commander_stats = table(
    "commander_stats",
    column("commander_id", Integer),
    column("name", String),
    column("colors", COLORS_TYPE),
    column("user_id", Integer),
    column("total_games", Integer),
    column("total_wins", Integer),
    column("avg_rounds", Float),
    column("starting_player_wins", Integer),
    column("sol_ring_wins", Integer),
    column("last_played", Date),
)
