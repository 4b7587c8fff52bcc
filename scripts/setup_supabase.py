#!/usr/bin/env python3
"""
Supabase Setup Helper for INTERVAI

Verifies the Supabase connection and the tables the API and worker use,
and prints the SQL to create whatever is missing.

Usage:
    python scripts/setup_supabase.py

Requirements:
    - Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables
    - Or create a .env file with these values
"""

import sys

from supabase import Client

from intervai.config import AppConfig
from intervai.database import SupabaseClientError, create_supabase_admin_client

REQUIRED_TABLES = ["sessions", "questions"]

SCHEMA_SQL = """
create table if not exists sessions (
    id uuid primary key default gen_random_uuid(),
    user_id text not null,
    role text not null,
    experience text not null,
    topics text[] not null check (cardinality(topics) > 0),
    question_ids uuid[] not null default '{}',
    status text not null default 'pending'
        check (status in ('pending', 'in-progress', 'completed', 'cancelled')),
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now()
);
create index if not exists sessions_user_id_idx on sessions (user_id);

create table if not exists questions (
    id uuid primary key default gen_random_uuid(),
    session_id uuid not null references sessions (id) on delete cascade,
    question text not null check (char_length(question) between 5 and 2000),
    answer text not null check (char_length(answer) between 10 and 5000),
    is_pinned boolean not null default false,
    difficulty text not null default 'medium' check (difficulty in ('easy', 'medium', 'hard')),
    category text not null default '' check (char_length(category) <= 100),
    notes text not null default '' check (char_length(notes) <= 1000),
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now()
);
create index if not exists questions_session_id_idx on questions (session_id);

-- Atomic edits of sessions.question_ids, called through PostgREST rpc
create or replace function append_session_questions(p_session_id uuid, p_question_ids uuid[])
returns setof sessions language sql as $$
    update sessions
    set question_ids = array_cat(question_ids, p_question_ids), updated_at = now()
    where id = p_session_id
    returning *;
$$;

create or replace function remove_session_questions(p_session_id uuid, p_question_ids uuid[])
returns setof sessions language sql as $$
    update sessions
    set question_ids = array(
            select q from unnest(question_ids) with ordinality as t(q, n)
            where q <> all(p_question_ids)
            order by n
        ),
        updated_at = now()
    where id = p_session_id
    returning *;
$$;
"""


def check_supabase_connection(app_config: AppConfig):
    """Test the Supabase connection. Returns the client or None."""
    if not app_config.supabase_configured:
        print("\n❌ Missing Supabase credentials!")
        print("\nSet these environment variables:")
        print("  SUPABASE_URL=https://your-project.supabase.co")
        print("  SUPABASE_SERVICE_KEY=eyJhbGci...")
        return None

    print(f"\n🔗 Connecting to: {app_config.SUPABASE_URL}")

    try:
        client = create_supabase_admin_client(app_config)
    except SupabaseClientError as e:
        print(f"❌ Connection failed: {e}")
        return None

    print("✅ Supabase client created")
    return client


def check_tables(client: Client):
    """Check which required tables exist."""
    print("\n📋 Checking required tables:")

    missing = []
    for table in REQUIRED_TABLES:
        try:
            client.table(table).select("id").limit(1).execute()
            print(f"   ✅ {table}")
        except Exception as e:
            if "does not exist" in str(e) or "Could not find" in str(e):
                print(f"   ❌ {table} (missing)")
                missing.append(table)
            else:
                print(f"   ⚠️  {table} (error: {e})")

    return missing


def print_schema_instructions():
    print("\n" + "=" * 60)
    print("📚 SCHEMA")
    print("=" * 60)
    print("Run this in the Supabase SQL Editor, then run this script again:")
    print(SCHEMA_SQL)


def main():
    print("=" * 60)
    print("🚀 INTERVAI - Supabase Setup Helper")
    print("=" * 60)

    # AppConfig reads .env itself
    app_config = AppConfig()

    client = check_supabase_connection(app_config)
    if client is None:
        return 1

    missing = check_tables(client)
    if missing:
        print(f"\n⚠️  Missing {len(missing)} table(s)")
        print_schema_instructions()
        return 1

    print("\n✅ All tables exist!")
    print("\nYour Supabase database is ready for INTERVAI.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
