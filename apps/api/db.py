"""
Database connection setup (sync SQLAlchemy + psycopg2).

No connection pool is kept: every store call opens a connection and
closes it when the call ends.
"""

import json
import logging

import aioboto3
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.pool import NullPool

from apps.api.config import Settings

logger = logging.getLogger(__name__)


async def resolve_database_url(
    settings: Settings,
    session: aioboto3.Session | None = None,
) -> str | URL:
    """
    Work out the database URL.

    With ``db_secret_arn`` set, username and password are read from that
    Secrets Manager secret (JSON with ``username`` and ``password``) and
    combined with the configured host, port and database name. Otherwise
    ``database_url`` is used as is.
    """
    if not settings.db_secret_arn:
        return settings.database_url

    session = session or aioboto3.Session()
    async with session.client("secretsmanager", region_name=settings.aws_region) as client:
        secret = await client.get_secret_value(SecretId=settings.db_secret_arn)
    credentials = json.loads(secret["SecretString"])

    query = {"sslmode": "require"} if settings.environment == "production" else {}
    logger.info(
        f"Database credentials loaded from secret for {settings.db_host}:{settings.db_port}"
    )
    return URL.create(
        "postgresql+psycopg2",
        username=credentials["username"],
        password=credentials["password"],
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        query=query,
    )


def build_engine(url: str | URL) -> Engine:
    """Create an engine that opens a fresh connection per checkout."""
    connect_args = {}
    if make_url(url).get_backend_name() == "postgresql":
        connect_args["connect_timeout"] = 5
    return create_engine(url, poolclass=NullPool, connect_args=connect_args)
