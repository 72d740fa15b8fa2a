"""
Snowflake Connection - DJ Rank
djrank/services/snowflake.py

Connection factory used by the Snowflake repositories and schema scripts.
"""

import snowflake.connector
from dotenv import load_dotenv

from djrank.config import get_settings


def get_snowflake_connection():
    """
    Open a new Snowflake connection from settings.
    Callers own the connection and must close it.
    """
    load_dotenv()
    settings = get_settings()

    return snowflake.connector.connect(
        account=settings.SNOWFLAKE_ACCOUNT,
        user=settings.SNOWFLAKE_USER,
        password=settings.SNOWFLAKE_PASSWORD.get_secret_value() if settings.SNOWFLAKE_PASSWORD else None,
        warehouse=settings.SNOWFLAKE_WAREHOUSE,
        database=settings.SNOWFLAKE_DATABASE,
        schema=settings.SNOWFLAKE_SCHEMA,
        role=settings.SNOWFLAKE_ROLE,
    )
