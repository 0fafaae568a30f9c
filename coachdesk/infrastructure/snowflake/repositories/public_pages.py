"""
Snowflake repository for coaches' public marketing pages.

A coach has at most one page, so there is no separate create and update:
`create_or_update` patches the caller's page when it exists and inserts one
otherwise. Slugs are unique across coaches.

Snowflake does not enforce UNIQUE constraints. Both rules are kept by
writing through one MERGE that matches on the coach or the slug; MERGE
holds the table lock until commit, so concurrent saves run one after the
other. The holders are read again before COMMIT and a duplicate rolls the
save back.
"""

import dataclasses
import json
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from coachdesk.core.coaching.errors import InvalidRecordError, SlugTakenError, StaleRecordError
from coachdesk.core.coaching.models import PublicPage, Testimonial, normalize_slug
from coachdesk.core.coaching.ownership import require_caller

from .base import DocumentRepository

logger = logging.getLogger(__name__)


class PublicPageRepository(DocumentRepository[PublicPage]):
    table = "public_pages"
    index_columns = ("coach_id", "slug")
    unique_columns = ("coach_id", "slug")
    kind = "Public page"

    def get_mine(self, caller_id: str) -> Optional[PublicPage]:
        caller_id = require_caller(caller_id)
        found = self._select_where("coach_id", caller_id)
        return found[0][0] if found else None

    def get_by_slug(self, slug: str) -> Optional[PublicPage]:
        """Public lookup. Inactive pages are not served."""
        try:
            slug = normalize_slug(slug)
        except InvalidRecordError:
            return None

        for page, _ in self._select_where("slug", slug):
            if page.is_active:
                return page
        return None

    def create_or_update(self, caller_id: str, **fields: Any) -> str:
        """
        Save the caller's page and return its id.

        Calling this twice with different slugs leaves one page carrying
        the second slug. Raises SlugTakenError if another coach holds the
        slug, and StaleRecordError if a concurrent save by the same coach
        got there first.
        """
        caller_id = require_caller(caller_id)
        fields.pop("id", None)
        fields.pop("coach_id", None)
        fields.pop("created_at", None)
        slug = fields["slug"] = normalize_slug(fields["slug"])

        with self._transaction():
            self._ensure_slug_free(slug, caller_id)

            existing = self._select_where("coach_id", caller_id)
            if existing:
                page, version = existing[0]
                page = dataclasses.replace(page, **fields)
            else:
                page, version = PublicPage(id=str(uuid4()), coach_id=caller_id, **fields), None

            if not self._merge(page, version):
                self._ensure_slug_free(slug, caller_id)
                raise StaleRecordError("Public page was saved concurrently, reload and retry")

            self._ensure_slug_free(slug, caller_id)
            if len(self._select_where("coach_id", caller_id)) > 1:
                raise StaleRecordError("Public page was saved concurrently, reload and retry")

            logger.info(
                "Saved public page",
                extra={"page_id": page.id, "slug": slug, "caller_id": caller_id}
            )
            return page.id

    def _ensure_slug_free(self, slug: str, caller_id: str) -> None:
        for holder, _ in self._select_where("slug", slug):
            if holder.coach_id != caller_id:
                logger.warning(
                    "Slug already taken",
                    extra={"slug": slug, "caller_id": caller_id}
                )
                raise SlugTakenError(
                    "This URL slug is already taken. Please choose a different one."
                )

    def _merge(self, page: PublicPage, expected_version: Optional[int]) -> int:
        """
        Insert the page, or update the caller's row if it is still at
        `expected_version`. Returns the number of rows written.
        """
        cursor = self._conn.cursor()
        try:
            cursor.execute(
                f"MERGE INTO {self.table} AS t "
                "USING (SELECT %s AS id, %s AS coach_id, %s AS slug, "
                "%s AS created_at, PARSE_JSON(%s) AS data) AS s "
                "ON t.coach_id = s.coach_id OR t.slug = s.slug "
                "WHEN MATCHED AND t.coach_id = s.coach_id AND t.version = %s THEN "
                "UPDATE SET slug = s.slug, data = s.data, version = t.version + 1 "
                "WHEN NOT MATCHED THEN "
                "INSERT (id, coach_id, slug, created_at, version, data) "
                "VALUES (s.id, s.coach_id, s.slug, s.created_at, 1, s.data)",
                (
                    page.id,
                    page.coach_id,
                    page.slug,
                    self._created_at(page),
                    json.dumps(self._to_document(page)),
                    expected_version,
                ),
            )
            return cursor.rowcount
        finally:
            cursor.close()

    def _to_document(self, record: PublicPage) -> dict:
        return {
            "coach_id": record.coach_id,
            "slug": record.slug,
            "title": record.title,
            "theme": record.theme,
            "primary_color": record.primary_color,
            "hero_title": record.hero_title,
            "hero_subtitle": record.hero_subtitle,
            "about_text": record.about_text,
            "testimonials": [
                {"name": t.name, "text": t.text, "image": t.image}
                for t in record.testimonials
            ],
            "logo": record.logo,
            "client_images": list(record.client_images),
            "contact_email": record.contact_email,
            "is_active": record.is_active,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> PublicPage:
        return PublicPage(
            id=record_id,
            coach_id=document["coach_id"],
            slug=document["slug"],
            title=document["title"],
            theme=document.get("theme", "default"),
            primary_color=document.get("primary_color", "#3b82f6"),
            hero_title=document.get("hero_title", ""),
            hero_subtitle=document.get("hero_subtitle"),
            about_text=document.get("about_text"),
            testimonials=[Testimonial(**t) for t in document.get("testimonials") or []],
            logo=document.get("logo"),
            client_images=document.get("client_images") or [],
            contact_email=document.get("contact_email", ""),
            is_active=document.get("is_active", True),
            created_at=created_at,
        )
