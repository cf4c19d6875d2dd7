"""
Database schema for drafts, players and draft picks

The uniqueness constraints on draft_picks are what make pick recording
linearizable: concurrent writers for the same slot or the same player
cannot both commit.
"""
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, MetaData,
    String, Table, UniqueConstraint, func,
)

metadata = MetaData()

drafts = Table(
    "drafts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("sport", String(8), nullable=False, default="NBA"),
    Column("draft_type", String(16), nullable=False, default="snake"),
    Column("league_name", String(100)),
    Column("num_teams", Integer, nullable=False, default=12),
    Column("draft_position", Integer, nullable=False, default=1),
    Column("scoring_type", String(16), nullable=False, default="points"),
    Column("roster_size", Integer, nullable=False, default=13),
    Column("current_round", Integer, nullable=False, default=1),
    Column("current_pick", Integer, nullable=False, default=1),
    Column("status", String(16), nullable=False, default="setup"),
    Column("settings", JSON),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now()),
    Index("idx_drafts_user_id", "user_id"),
    Index("idx_drafts_status", "status"),
    Index("idx_drafts_created_at", "created_at"),
)

players = Table(
    "players",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("sport", String(8), nullable=False, default="NBA"),
    Column("full_name", String(120), nullable=False),
    Column("team", String(10)),
    Column("position", String(10)),
    Column("positions", JSON),
    Column("adp", Integer),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now()),
    Index("idx_players_sport", "sport"),
    Index("idx_players_team", "team"),
    Index("idx_players_position", "position"),
    Index("idx_players_full_name", "full_name"),
)

draft_picks = Table(
    "draft_picks",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("draft_id", String(36), ForeignKey("drafts.id", ondelete="CASCADE"), nullable=False),
    Column("player_id", String(36), ForeignKey("players.id"), nullable=False),
    Column("team_number", Integer, nullable=False),
    Column("round", Integer, nullable=False),
    Column("pick_number", Integer, nullable=False),
    Column("pick_in_round", Integer, nullable=False),
    Column("is_user_pick", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, server_default=func.now()),
    UniqueConstraint("draft_id", "player_id", name="uq_draft_picks_draft_player"),
    UniqueConstraint("draft_id", "pick_number", name="uq_draft_picks_draft_pick_number"),
    Index("idx_draft_picks_draft_id", "draft_id"),
    Index("idx_draft_picks_team_number", "team_number"),
)
