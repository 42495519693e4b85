"""001 – Initial schema: profiles, roles, sessions, sales, goals,
leave, expenses, IT, announcements, notifications, audit trail.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-14
"""

from alembic import op

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

ENUM_TYPES = [
    ("app_role", ["ceo", "manager", "hr", "it", "finance", "user"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. profiles ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE profiles (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email       VARCHAR(255) NOT NULL UNIQUE,
            full_name   VARCHAR(200),
            department  VARCHAR(100),
            phone       VARCHAR(30),
            avatar_url  VARCHAR(500),
            google_id   VARCHAR(100) UNIQUE,
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. user_roles ─────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_roles (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            role        app_role NOT NULL,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_user_roles_user_role UNIQUE (user_id, role)
        )
    """)
    op.execute("CREATE INDEX ix_user_roles_user_id ON user_roles(user_id)")

    # ── 3. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id             UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            token_hash          VARCHAR(512) NOT NULL,
            refresh_token_hash  VARCHAR(512),
            ip_address          INET,
            user_agent          TEXT,
            expires_at          TIMESTAMPTZ NOT NULL,
            is_revoked          BOOLEAN NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_user_id ON user_sessions(user_id)")
    op.execute("CREATE INDEX ix_user_sessions_token_hash ON user_sessions(token_hash)")
    op.execute(
        "CREATE INDEX ix_user_sessions_refresh_token_hash "
        "ON user_sessions(refresh_token_hash)"
    )

    # ── 4. transactions ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE transactions (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id           UUID NOT NULL REFERENCES profiles(id),
            transaction_id    VARCHAR(100) NOT NULL,
            date              DATE NOT NULL,
            region            VARCHAR(100) NOT NULL,
            sale_amount       NUMERIC(14,2) NOT NULL DEFAULT 0,
            customer_segment  VARCHAR(50) NOT NULL,
            lead_source       VARCHAR(50) NOT NULL,
            status            VARCHAR(30) NOT NULL,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_transactions_amount_non_negative CHECK (sale_amount >= 0)
        )
    """)
    op.execute("CREATE INDEX ix_transactions_user_id ON transactions(user_id)")
    op.execute("CREATE INDEX ix_transactions_date ON transactions(date)")

    # ── 5. goals ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE goals (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id        UUID NOT NULL REFERENCES profiles(id),
            created_by     UUID NOT NULL REFERENCES profiles(id),
            target_amount  NUMERIC(14,2) NOT NULL,
            period         VARCHAR(20) NOT NULL,
            start_date     DATE NOT NULL,
            end_date       DATE NOT NULL,
            status         VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at     TIMESTAMPTZ DEFAULT NOW(),
            updated_at     TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_goals_target_positive CHECK (target_amount > 0),
            CONSTRAINT ck_goals_date_range CHECK (end_date >= start_date)
        )
    """)
    op.execute("CREATE INDEX ix_goals_user_id ON goals(user_id)")

    # ── 6. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            leave_type   VARCHAR(30) NOT NULL,
            start_date   DATE NOT NULL,
            end_date     DATE NOT NULL,
            reason       TEXT,
            status       VARCHAR(20) NOT NULL DEFAULT 'pending',
            reviewed_by  UUID REFERENCES profiles(id),
            reviewed_at  TIMESTAMPTZ,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_leave_requests_user_id ON leave_requests(user_id)")
    op.execute("CREATE INDEX ix_leave_requests_status ON leave_requests(status)")

    # ── 7. expenses ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE expenses (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id       UUID NOT NULL REFERENCES profiles(id),
            category      VARCHAR(100) NOT NULL,
            description   TEXT NOT NULL,
            amount        NUMERIC(12,2) NOT NULL,
            expense_date  DATE NOT NULL,
            receipt_url   VARCHAR(500),
            status        VARCHAR(20) NOT NULL DEFAULT 'pending',
            reviewed_by   UUID REFERENCES profiles(id),
            reviewed_at   TIMESTAMPTZ,
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            updated_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_expenses_user_id ON expenses(user_id)")
    op.execute("CREATE INDEX ix_expenses_status ON expenses(status)")

    # ── 8. it_assets ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE it_assets (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            asset_name       VARCHAR(200) NOT NULL,
            asset_type       VARCHAR(100) NOT NULL,
            serial_number    VARCHAR(100) UNIQUE,
            assigned_to      UUID REFERENCES profiles(id),
            status           VARCHAR(20) NOT NULL DEFAULT 'available',
            purchase_date    DATE,
            warranty_expiry  DATE,
            notes            TEXT,
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_it_assets_assigned_to ON it_assets(assigned_to)")

    # ── 9. it_tickets ─────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE it_tickets (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            created_by   UUID NOT NULL REFERENCES profiles(id),
            assigned_to  UUID REFERENCES profiles(id),
            title        VARCHAR(300) NOT NULL,
            description  TEXT NOT NULL,
            category     VARCHAR(100) NOT NULL,
            priority     VARCHAR(20) NOT NULL DEFAULT 'medium',
            status       VARCHAR(20) NOT NULL DEFAULT 'open',
            resolved_at  TIMESTAMPTZ,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_it_tickets_created_by ON it_tickets(created_by)")

    # ── 10. announcements ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE announcements (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            created_by  UUID NOT NULL REFERENCES profiles(id),
            title       VARCHAR(300) NOT NULL,
            content     TEXT NOT NULL,
            priority    VARCHAR(20) NOT NULL DEFAULT 'normal',
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 11. notifications ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            type        VARCHAR(30) NOT NULL,
            title       VARCHAR(200) NOT NULL,
            message     TEXT NOT NULL,
            read        BOOLEAN NOT NULL DEFAULT FALSE,
            related_id  UUID,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_notifications_user_id ON notifications(user_id)")
    op.execute(
        "CREATE INDEX ix_notifications_unread ON notifications(user_id) "
        "WHERE read = FALSE"
    )

    # ── 12. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id     UUID REFERENCES profiles(id),
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID NOT NULL,
            old_values   JSONB,
            new_values   JSONB,
            ip_address   INET,
            user_agent   TEXT,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "announcements",
        "it_tickets",
        "it_assets",
        "expenses",
        "leave_requests",
        "goals",
        "transactions",
        "user_sessions",
        "user_roles",
        "profiles",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
