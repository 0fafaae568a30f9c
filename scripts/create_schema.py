#!/usr/bin/env python3
"""
Create the CoachDesk tables in Snowflake.

Every repository stores its records in one table with the same layout
(id, index columns, created_at, version, data VARIANT), so the DDL is
generated from the repository classes themselves.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --dry-run

Requires:
    - .env file with Snowflake credentials
"""

import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from coachdesk.infrastructure.snowflake.repositories import (  # noqa: E402
    ClientProgressRepository,
    ClientRepository,
    ExerciseRepository,
    FormRepository,
    FormSubmissionRepository,
    MealPlanRepository,
    MealRepository,
    PricingPlanRepository,
    PublicPageRepository,
    WorkoutRepository,
    WorkoutSplitRepository,
)

REPOSITORIES = [
    ClientRepository,
    ClientProgressRepository,
    ExerciseRepository,
    WorkoutRepository,
    WorkoutSplitRepository,
    MealRepository,
    MealPlanRepository,
    PricingPlanRepository,
    FormRepository,
    FormSubmissionRepository,
    PublicPageRepository,
]


def table_ddl(repository) -> list[str]:
    """CREATE TABLE and clustering key for one repository's table."""
    index_columns = "".join(
        f"\n    {column} VARCHAR(64) NOT NULL," for column in repository.index_columns
    )
    # Snowflake records UNIQUE but never enforces it; the repository's
    # MERGE is what keeps these columns unique
    unique = "".join(f",\n    UNIQUE ({column})" for column in repository.unique_columns)
    comment = (
        f"\nCOMMENT = 'unique {', '.join(repository.unique_columns)} kept by MERGE under the table lock'"
        if repository.unique_columns else ""
    )
    statements = [
        f"""CREATE TABLE IF NOT EXISTS {repository.table} (
    id VARCHAR(36) NOT NULL PRIMARY KEY,{index_columns}
    created_at TIMESTAMP_TZ NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    data VARIANT NOT NULL{unique}
){comment}"""
    ]
    # Snowflake has no secondary indexes
    statements.append(
        f"ALTER TABLE {repository.table} CLUSTER BY ({repository.index_columns[0]})"
    )
    return statements


def create_schema(dry_run: bool = False) -> bool:
    from coachdesk.config.settings import get_settings
    from coachdesk.infrastructure.snowflake.client import (
        SnowflakeConnectionError,
        get_snowflake_connection,
    )
    from coachdesk.infrastructure.snowflake.repositories import SnowflakeConfig

    statements = [sql for repository in REPOSITORIES for sql in table_ddl(repository)]

    if dry_run:
        print("\n=== DRY RUN - Nothing will be executed ===\n")
        for sql in statements:
            print(f"{sql};\n")
        print(f"Total: {len(REPOSITORIES)} tables")
        return True

    settings = get_settings()
    missing = [
        field for field in settings.validate_required_fields()
        if field.startswith("SNOWFLAKE")
    ]
    if missing:
        print(f"ERROR: Missing {', '.join(missing)}")
        return False

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        print(f"Connecting to Snowflake account: {config.account}")
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            try:
                print(f"Using database {config.database}, schema {config.schema}")
                cursor.execute(f"CREATE SCHEMA IF NOT EXISTS {config.schema}")
                cursor.execute(f"USE SCHEMA {config.schema}")

                for repository in REPOSITORIES:
                    for sql in table_ddl(repository):
                        cursor.execute(sql)
                    print(f"[OK] {repository.table}")
            finally:
                cursor.close()
            conn.commit()
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        return False

    print("\n=== Schema ready ===")
    return True


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create CoachDesk tables in Snowflake')
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print the DDL without connecting'
    )
    args = parser.parse_args()

    success = create_schema(dry_run=args.dry_run)
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
