"""SQLAlchemy Core table definitions."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    func,
)

metadata = MetaData()

teams = Table(
    "teams",
    metadata,
    Column("team_name", String(255), primary_key=True),
)

users = Table(
    "users",
    metadata,
    Column("user_id", String(255), primary_key=True),
    Column("username", String(255), nullable=False),
    Column(
        "team_name",
        String(255),
        ForeignKey("teams.team_name", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("is_active", Boolean, nullable=False, default=True),
    Index("idx_users_team_active", "team_name", "is_active"),
)

pull_requests = Table(
    "pull_requests",
    metadata,
    Column("pull_request_id", String(255), primary_key=True),
    Column("pull_request_name", String(500), nullable=False),
    Column("author_id", String(255), ForeignKey("users.user_id"), nullable=False),
    Column("status", String(20), nullable=False, default="OPEN"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("merged_at", DateTime(timezone=True), nullable=True),
    Index("idx_pull_requests_author", "author_id"),
)

pull_request_reviewers = Table(
    "pull_request_reviewers",
    metadata,
    Column(
        "pull_request_id",
        String(255),
        ForeignKey("pull_requests.pull_request_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("user_id", String(255), ForeignKey("users.user_id"), primary_key=True),
    Index("idx_pull_request_reviewers_user", "user_id"),
)
