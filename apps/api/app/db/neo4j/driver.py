from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache

from neo4j import Driver, GraphDatabase

from app.core.config import get_settings


@lru_cache(maxsize=1)
def get_driver() -> Driver | None:
    settings = get_settings()
    if not settings.neo4j_uri:
        return None
    return GraphDatabase.driver(
        settings.neo4j_uri,
        auth=(settings.neo4j_user, settings.neo4j_password),
    )


def close_driver() -> None:
    if get_driver.cache_info().currsize:
        driver = get_driver()
        if driver is not None:
            driver.close()
    get_driver.cache_clear()


@contextmanager
def neo4j_session():
    driver = get_driver()
    if driver is None:
        yield None
        return
    settings = get_settings()
    with driver.session(database=settings.neo4j_database) as session:
        yield session
