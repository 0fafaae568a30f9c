"""
FastAPI dependency injection.

Dependencies provide repositories, clients, configuration and the caller's
identity to route handlers. Routes don't instantiate their own dependencies,
so tests can swap any of them through `app.dependency_overrides`.

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from contextlib import contextmanager
from typing import Annotated, Generator, Iterator, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.coaching.ownership import require_caller
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    get_snowflake_connection,
)
from ..infrastructure.snowflake.repositories import (
    ClientProgressRepository,
    ClientRepository,
    ExerciseRepository,
    FormRepository,
    FormSubmissionRepository,
    MealPlanRepository,
    MealRepository,
    PricingPlanRepository,
    PublicPageRepository,
    SnowflakeConfig,
    WorkoutRepository,
    WorkoutSplitRepository,
)
from ..infrastructure.snowflake.repositories.base import SnowflakeConnection
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Global mock instances (shared across requests for testing)
_mock_storage_client = None
_mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    The key identifies the calling frontend, not the coach. Raises 403 if
    the key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8] if api_key else ""}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


async def resolve_caller(
    api_key: Annotated[str, Depends(verify_api_key)],
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Resolve the calling coach's id.

    The upstream auth provider signs the coach in and forwards their user id
    in `X-User-Id`. Without it the request is unauthenticated (401).
    """
    return require_caller(x_user_id)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def snowflake_config(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
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


@contextmanager
def open_connection(settings: Settings) -> Iterator[SnowflakeConnection]:
    """
    Open the connection the settings call for.

    In mock mode, one in-memory connection is shared across requests so
    data persists during the session.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")
        yield _mock_snowflake_connection
        return

    with get_snowflake_connection(snowflake_config(settings)) as conn:
        yield conn


def get_connection(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide a Snowflake connection for the duration of one request.

    This is a generator function so FastAPI closes the connection after the
    response.
    """
    with open_connection(settings) as conn:
        logger.debug("Opened Snowflake connection for request")
        yield conn


ConnectionDep = Annotated[SnowflakeConnection, Depends(get_connection)]


def get_client_repository(conn: ConnectionDep) -> ClientRepository:
    return ClientRepository(conn)


def get_progress_repository(conn: ConnectionDep) -> ClientProgressRepository:
    return ClientProgressRepository(conn)


def get_exercise_repository(conn: ConnectionDep) -> ExerciseRepository:
    return ExerciseRepository(conn)


def get_workout_repository(conn: ConnectionDep) -> WorkoutRepository:
    return WorkoutRepository(conn)


def get_workout_split_repository(conn: ConnectionDep) -> WorkoutSplitRepository:
    return WorkoutSplitRepository(conn)


def get_meal_repository(conn: ConnectionDep) -> MealRepository:
    return MealRepository(conn)


def get_meal_plan_repository(conn: ConnectionDep) -> MealPlanRepository:
    return MealPlanRepository(conn)


def get_pricing_plan_repository(conn: ConnectionDep) -> PricingPlanRepository:
    return PricingPlanRepository(conn)


def get_form_repository(conn: ConnectionDep) -> FormRepository:
    return FormRepository(conn)


def get_submission_repository(conn: ConnectionDep) -> FormSubmissionRepository:
    return FormSubmissionRepository(conn)


def get_public_page_repository(conn: ConnectionDep) -> PublicPageRepository:
    return PublicPageRepository(conn)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for media uploads.

    In mock mode, the same client is reused across requests so issued
    keys stay resolvable during the session.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
    )
    client = create_storage_client(config=config)
    logger.debug("Created R2 storage client")

    return client


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
ApiKey = Annotated[str, Depends(verify_api_key)]
CurrentCoach = Annotated[str, Depends(resolve_caller)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]

ClientRepositoryDep = Annotated[ClientRepository, Depends(get_client_repository)]
ProgressRepositoryDep = Annotated[ClientProgressRepository, Depends(get_progress_repository)]
ExerciseRepositoryDep = Annotated[ExerciseRepository, Depends(get_exercise_repository)]
WorkoutRepositoryDep = Annotated[WorkoutRepository, Depends(get_workout_repository)]
WorkoutSplitRepositoryDep = Annotated[WorkoutSplitRepository, Depends(get_workout_split_repository)]
MealRepositoryDep = Annotated[MealRepository, Depends(get_meal_repository)]
MealPlanRepositoryDep = Annotated[MealPlanRepository, Depends(get_meal_plan_repository)]
PricingPlanRepositoryDep = Annotated[PricingPlanRepository, Depends(get_pricing_plan_repository)]
FormRepositoryDep = Annotated[FormRepository, Depends(get_form_repository)]
SubmissionRepositoryDep = Annotated[FormSubmissionRepository, Depends(get_submission_repository)]
PublicPageRepositoryDep = Annotated[PublicPageRepository, Depends(get_public_page_repository)]
