import logging
from datetime import date, datetime
from typing import Any
from urllib.parse import quote

import httpx

from lexis.domain.constants import (
    DEFAULT_AUDIO_BUCKET,
    DEFAULT_EASINESS,
    ID_FILTER_BATCH,
    INVALID_TEXT_REPRESENTATION,
    PAGE_SIZE,
    REQUEST_TIMEOUT,
    RESPONSIVENESS_TIMEOUT,
)
from lexis.domain.errors import LexisError, NotFound, StoreUnavailable
from lexis.domain.models import Card, CardMemoryState, Course, Grade, Level, Scope
from lexis.domain.ports import CardRepository, ProgressRepository

WORD_COLUMNS = "id,level_id,course_id,siswati,english,part_of_speech,audio_path"


class SupabaseStore(ProgressRepository, CardRepository):
    """
    Adapter for a Supabase project, spoken to through its PostgREST API.

    Tables: ``courses``, ``levels``, ``words`` and ``progress`` (unique on
    ``user_id, word_id``). Due filtering happens here with the caller's
    ``today`` rather than in a database function, so the server clock never
    decides what is due.
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        access_token: str | None = None,
        audio_bucket: str = DEFAULT_AUDIO_BUCKET,
        timeout: float = REQUEST_TIMEOUT,
        page_size: int = PAGE_SIZE,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.url = url.rstrip("/")
        self.audio_bucket = audio_bucket
        self.page_size = page_size
        self._timeout = timeout
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {access_token or key}",
            "Accept": "application/json",
        }
        self._client = client
        self.logger.debug(f"SupabaseStore initialized with url={self.url}")

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def is_responsive(self) -> bool:
        """Check that the REST endpoint answers at all."""
        try:
            resp = await self._get_client().get(
                f"{self.rest_url}/", headers=self._headers, timeout=RESPONSIVENESS_TIMEOUT
            )
            return resp.status_code < 500
        except httpx.HTTPError:
            return False

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = await self._get_client().request(
                method, f"{self.rest_url}/{table}", params=params, json=json, headers=headers
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404 or _is_malformed_id(e.response):
                raise NotFound(f"{table}: {e.response.text}") from e
            if status >= 500 or status == 429:
                raise StoreUnavailable(f"{method} {table} failed with {status}") from e
            raise LexisError(f"{method} {table} rejected ({status}): {e.response.text}") from e
        except httpx.TransportError as e:
            raise StoreUnavailable(f"{method} {table} failed: {e}") from e

        if not resp.content:
            return None
        return resp.json()

    async def _select_all(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        """
        GET every matching row, one page at a time.

        PostgREST silently truncates at its ``max-rows`` setting, which may be
        smaller than the requested limit, so paging stops on an empty page
        rather than a short one. ``params`` must carry a total ``order``.
        """
        rows: list[dict[str, Any]] = []
        while True:
            page = await self._request(
                "GET",
                table,
                params={**params, "limit": str(self.page_size), "offset": str(len(rows))},
            )
            if not page:
                return rows
            rows.extend(page)

    # ------------------------------------------------------------------
    # ProgressRepository
    # ------------------------------------------------------------------

    async def read_memory_state(self, learner_id: str, card_id: str) -> CardMemoryState | None:
        rows = await self._request(
            "GET",
            "progress",
            params={
                "select": "*",
                "user_id": f"eq.{learner_id}",
                "word_id": f"eq.{card_id}",
                "limit": "1",
            },
        )
        if not rows:
            return None
        return _state_from_row(rows[0])

    async def write_memory_state(self, state: CardMemoryState) -> None:
        await self._request(
            "POST",
            "progress",
            params={"on_conflict": "user_id,word_id"},
            json=_state_to_row(state),
            prefer="resolution=merge-duplicates,return=minimal",
        )

    # ------------------------------------------------------------------
    # CardRepository
    # ------------------------------------------------------------------

    async def query_cards(
        self,
        scope: Scope,
        *,
        due_only: bool,
        today: date,
        learner_id: str | None = None,
    ) -> list[Card]:
        await self._levels_in(scope)  # Existence check
        cards = await self._words_in(scope)
        if not due_only:
            return cards
        if learner_id is None:
            raise ValueError("due_only queries need a learner_id")

        not_due = await self._not_due_word_ids(learner_id, [c.id for c in cards], today)
        return [c for c in cards if c.id not in not_due]

    async def query_due_counts(self, scope: Scope, learner_id: str, today: date) -> dict[str, int]:
        levels = await self._levels_in(scope)
        counts = {lvl.id: 0 for lvl in levels}
        cards = await self._words_in(scope)
        not_due = await self._not_due_word_ids(learner_id, [c.id for c in cards], today)
        for card in cards:
            if card.level_id in counts and card.id not in not_due:
                counts[card.level_id] += 1
        return counts

    async def list_courses(self) -> list[Course]:
        rows = await self._request(
            "GET", "courses", params={"select": "*", "order": "created_at.desc"}
        )
        return [
            Course(
                id=str(r["id"]),
                title=r.get("title") or "",
                description=r.get("description"),
                owner=r.get("owner"),
                is_public=bool(r.get("is_public", True)),
            )
            for r in rows or []
        ]

    async def list_levels(self, course_id: str) -> list[Level]:
        return await self._levels_in(Scope.course(course_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def audio_url(self, audio_path: str | None) -> str | None:
        """Public URL of an audio object in the course-assets bucket."""
        if not audio_path:
            return None
        return (
            f"{self.url}/storage/v1/object/public/{self.audio_bucket}/"
            f"{quote(audio_path.lstrip('/'))}"
        )

    async def _levels_in(self, scope: Scope) -> list[Level]:
        column = "id" if scope.is_level else "course_id"
        rows = await self._request(
            "GET",
            "levels",
            params={"select": "*", column: f"eq.{scope.id}", "order": "sort.asc"},
        )
        if not rows and scope.is_level:
            raise NotFound(f"Level '{scope.id}' not found")
        if not rows:
            await self._ensure_course(scope.id)
        return [
            Level(
                id=str(r["id"]),
                course_id=str(r["course_id"]),
                name=r.get("name") or "",
                sort=r.get("sort"),
            )
            for r in rows or []
        ]

    async def _ensure_course(self, course_id: str) -> None:
        rows = await self._request(
            "GET", "courses", params={"select": "id", "id": f"eq.{course_id}", "limit": "1"}
        )
        if not rows:
            raise NotFound(f"Course '{course_id}' not found")

    async def _words_in(self, scope: Scope) -> list[Card]:
        column = "level_id" if scope.is_level else "course_id"
        rows = await self._select_all(
            "words",
            {"select": WORD_COLUMNS, column: f"eq.{scope.id}", "order": "created_at.asc,id.asc"},
        )
        return [
            Card(
                id=str(r["id"]),
                front=r.get("siswati") or "",
                back=r.get("english") or "",
                level_id=str(r["level_id"]),
                course_id=str(r["course_id"]) if r.get("course_id") else None,
                part_of_speech=r.get("part_of_speech"),
                audio_path=r.get("audio_path"),
                audio_url=self.audio_url(r.get("audio_path")),
            )
            for r in rows or []
        ]

    async def _not_due_word_ids(
        self, learner_id: str, word_ids: list[str], today: date
    ) -> set[str]:
        """Ids among ``word_ids`` that the learner has scheduled after ``today``."""
        not_due: set[str] = set()
        for start in range(0, len(word_ids), ID_FILTER_BATCH):
            batch = word_ids[start : start + ID_FILTER_BATCH]
            rows = await self._select_all(
                "progress",
                {
                    "select": "word_id",
                    "user_id": f"eq.{learner_id}",
                    "word_id": f"in.({','.join(batch)})",
                    "due_date": f"gt.{today.isoformat()}",
                    "order": "word_id.asc",
                },
            )
            not_due.update(str(r["word_id"]) for r in rows)
        return not_due


def _is_malformed_id(response: httpx.Response) -> bool:
    """A 400 for an id Postgres cannot parse means no such row can exist."""
    if response.status_code != 400:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("code") == INVALID_TEXT_REPRESENTATION


def _state_to_row(state: CardMemoryState) -> dict[str, Any]:
    return {
        "user_id": state.learner_id,
        "word_id": state.card_id,
        "repetition": state.repetition,
        "easiness": state.easiness,
        "interval_days": state.interval_days,
        "due_date": state.due_date.isoformat() if state.due_date else None,
        "last_result": state.last_result.value if state.last_result else None,
        "updated_at": state.updated_at.isoformat() if state.updated_at else None,
    }


def _state_from_row(row: dict[str, Any]) -> CardMemoryState:
    updated_at = row.get("updated_at")
    return CardMemoryState(
        learner_id=str(row["user_id"]),
        card_id=str(row["word_id"]),
        repetition=int(row.get("repetition") or 0),
        easiness=(
            float(row["easiness"]) if row.get("easiness") is not None else DEFAULT_EASINESS
        ),
        interval_days=int(row.get("interval_days") or 0),
        due_date=date.fromisoformat(row["due_date"]) if row.get("due_date") else None,
        last_result=Grade(row["last_result"]) if row.get("last_result") else None,
        # PostgREST may return "Z" suffixes; fromisoformat handles them on 3.11+
        updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
    )
