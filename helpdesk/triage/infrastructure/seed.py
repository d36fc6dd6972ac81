"""
Database Seeding
================

Loads default config entries and sample knowledge-base articles from a
YAML file.

Config keys already in the store are left untouched, so values changed at
runtime survive restarts. Articles are inserted only into an empty table.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import ArticleStatus, TicketCategory
from helpdesk.core import ConfigurationException, ValidationException
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.triage.domain import Article, ConfigValue, CONFIG_VARIANTS, default_config_entries
from helpdesk.triage.infrastructure.repositories import (
    SQLAlchemyArticleRepository, SQLAlchemyConfigRepository
)

logger = get_logger(__name__)

_ENTRY_FIELDS = {
    "key", "value", "description", "category", "is_public", "version",
    "min_value", "max_value", "pattern", "choices",
}


def load_seed_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and sanity-check a seed file.

    Raises:
        ConfigurationException: unreadable file or unexpected layout
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationException(f"Cannot read seed file {path}", {"error": str(e)}) from e

    if not isinstance(data, dict):
        raise ConfigurationException(f"Seed file {path} must contain a mapping")
    for section in ("config", "articles"):
        if not isinstance(data.get(section) or [], list):
            raise ConfigurationException(f"Seed section '{section}' must be a list")
    return data


def parse_config_entry(raw: Dict[str, Any]) -> ConfigValue:
    """
    Build a config entry from one YAML mapping.

    Raises:
        ConfigurationException: unknown type or unknown fields
        ValidationException: value violates the entry's constraints
    """
    raw = dict(raw)
    type_name = raw.pop("type", None)
    variant = CONFIG_VARIANTS.get(type_name)
    if variant is None:
        raise ConfigurationException(
            f"Unknown config type '{type_name}'", {"key": raw.get("key")}
        )

    unknown = set(raw) - _ENTRY_FIELDS
    if unknown or "key" not in raw:
        raise ConfigurationException(
            "Malformed config entry", {"key": raw.get("key"), "unknown": sorted(unknown)}
        )
    if "choices" in raw:
        raw["choices"] = tuple(raw["choices"] or ())

    try:
        return variant(**raw)
    except TypeError as e:
        # constraint field that the variant does not have
        raise ConfigurationException(str(e), {"key": raw.get("key")}) from e


def parse_article(raw: Dict[str, Any]) -> Article:
    if not raw.get("title") or not raw.get("body"):
        raise ConfigurationException("Seed article needs a title and a body")
    return Article(
        id="",
        title=raw["title"],
        body=str(raw["body"]).strip(),
        tags=tuple(str(tag).lower() for tag in raw.get("tags") or ()),
        status=raw.get("status", ArticleStatus.PUBLISHED),
        category=raw.get("category", TicketCategory.OTHER),
    )


async def seed_database(session: AsyncSession, path: Union[str, Path]) -> Dict[str, int]:
    """
    Seed config entries and articles.

    Built-in defaults are seeded even when the file does not list them.
    The caller commits the session.

    Returns:
        Counts of inserted config entries and articles
    """
    data = load_seed_file(path)

    with log_latency(logger, "seed_database", path=str(path)):
        entries: Dict[str, ConfigValue] = {entry.key: entry for entry in default_config_entries()}
        for raw in data.get("config") or []:
            entry = parse_config_entry(raw)
            entries[entry.key] = entry

        config_repo = SQLAlchemyConfigRepository(session)
        config_inserted = 0
        for key, entry in entries.items():
            try:
                existing = await config_repo.get_value(key)
            except ValidationException:
                logger.warning("Replacing malformed config entry", extra={"key": key})
                existing = None
            if existing is None:
                await config_repo.save(entry)
                config_inserted += 1

        article_repo = SQLAlchemyArticleRepository(session)
        articles: List[Article] = [parse_article(raw) for raw in data.get("articles") or []]
        articles_inserted = 0
        if await article_repo.count() == 0:
            for article in articles:
                await article_repo.create(article)
                articles_inserted += 1

    logger.info(
        "Seed applied",
        extra={"config_inserted": config_inserted, "articles_inserted": articles_inserted}
    )
    return {"config": config_inserted, "articles": articles_inserted}
