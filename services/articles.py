"""
services/articles.py

Local article CMS. Articles live only in device storage (``crm:articles``);
nothing here talks to the backend.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from config.settings import ARTICLES_KEY
from core.local_storage import LocalStorage
from domain.models import Article
from utils.logger import get_logger

log = get_logger(__name__)

# Fields callers may not overwrite on update.
_IMMUTABLE = {"id", "created_at", "updated_at"}

# wire alias (camelCase) or field name -> field name
_FIELD_NAMES = {
    **{name: name for name in Article.model_fields},
    **{(info.alias or to_camel(name)): name for name, info in Article.model_fields.items()},
}


def now_iso() -> str:
    """UTC ISO-8601 with millisecond precision, e.g. 2026-01-20T14:23:45.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_article_id() -> str:
    return f"a_{uuid.uuid4().hex[:12]}_{int(datetime.now(timezone.utc).timestamp() * 1000)}"


def _by_field_name(values: dict[str, Any]) -> dict[str, Any]:
    """Rekey aliases to field names; unknown keys pass through."""
    return {_FIELD_NAMES.get(k, k): v for k, v in values.items()}


class ArticleStore:
    def __init__(self, storage: LocalStorage, key: str = ARTICLES_KEY):
        self.storage = storage
        self.key = key

    def _load(self) -> list[Article]:
        raw = self.storage.load_json(self.key, [])
        if not isinstance(raw, list):
            log.warning("articles.corrupt", key=self.key)
            return []
        articles = []
        for entry in raw:
            try:
                articles.append(Article.model_validate(entry))
            except ValidationError:
                log.debug("articles.skip_invalid")
        return articles

    def _save(self, articles: list[Article]) -> None:
        if not self.storage.save_json(self.key, [a.to_wire() for a in articles]):
            log.warning("articles.not_persisted", count=len(articles))

    def list(self) -> list[Article]:
        """All articles, most recently updated first."""
        return sorted(self._load(), key=lambda a: a.updated_at, reverse=True)

    def get(self, article_id: str) -> Optional[Article]:
        return next((a for a in self._load() if a.id == article_id), None)

    def create(self, title: str, **fields: Any) -> Article:
        ts = now_iso()
        article = Article.model_validate(
            {**_by_field_name(fields), "title": title, "id": new_article_id(), "created_at": ts, "updated_at": ts}
        )
        articles = self._load()
        articles.insert(0, article)
        self._save(articles)
        log.info("articles.created", id=article.id)
        return article

    def update(self, article_id: str, **patch: Any) -> Optional[Article]:
        """Apply ``patch`` and bump ``updated_at``; None if the id is unknown."""
        articles = self._load()
        for i, current in enumerate(articles):
            if current.id != article_id:
                continue
            data = current.model_dump()
            data.update({k: v for k, v in _by_field_name(patch).items() if k not in _IMMUTABLE})
            data["updated_at"] = now_iso()
            articles[i] = Article.model_validate(data)
            self._save(articles)
            log.info("articles.updated", id=article_id)
            return articles[i]
        return None

    def remove(self, article_id: str) -> bool:
        articles = self._load()
        kept = [a for a in articles if a.id != article_id]
        if len(kept) == len(articles):
            return False
        self._save(kept)
        log.info("articles.removed", id=article_id)
        return True
