"""Low-level HTTP client for the conservatory backend API."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from enrollsync.adapters.http_resilience import ResilientClient
from enrollsync.domain.errors import BackendNetworkError, EnrollSyncError, NotFoundError

from .schema import (
    DeletionExecution,
    DeletionPreview,
    OrchestraRecord,
    StudentRecord,
    TheoryLessonRecord,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from pydantic import BaseModel

    from enrollsync.adapters.http_resilience import RequestOptions
    from enrollsync.config.backend import BackendConfig
    from enrollsync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

STUDENT_PATH = "student"
ORCHESTRA_PATH = "orchestra"
THEORY_PATH = "theory"
NOTIFICATION_PATH = "notification"


class ConservatoryAPIError(EnrollSyncError):
    """The backend rejected a request or returned an unexpected payload."""


class ConservatoryClient:
    """Thin synchronous facade over the async backend API.

    Every public method runs its own event loop; methods that touch several
    documents issue the independent reads concurrently.
    """

    def __init__(
        self,
        *,
        config: BackendConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    # Students

    def fetch_student(self, student_id: str) -> StudentRecord:
        path = f"{STUDENT_PATH}/{student_id}"
        return asyncio.run(self._fetch_one(path, StudentRecord, "student", student_id))

    def fetch_students(self, student_ids: Iterable[str]) -> list[StudentRecord]:
        return asyncio.run(self._fetch_students_async(list(dict.fromkeys(student_ids))))

    def list_students(self) -> list[StudentRecord]:
        return asyncio.run(self._fetch_many(STUDENT_PATH, StudentRecord))

    def patch_student_enrollments(
        self, student_id: str, enrollments: Mapping[str, list[str]]
    ) -> StudentRecord:
        """Read-modify-write of the student's enrollment arrays only."""
        return asyncio.run(self._patch_student_async(student_id, enrollments))

    # Orchestras and ensembles

    def fetch_orchestra(self, orchestra_id: str) -> OrchestraRecord:
        path = f"{ORCHESTRA_PATH}/{orchestra_id}"
        return asyncio.run(self._fetch_one(path, OrchestraRecord, "orchestra", orchestra_id))

    def list_orchestras(self) -> list[OrchestraRecord]:
        return asyncio.run(self._fetch_many(ORCHESTRA_PATH, OrchestraRecord))

    def add_orchestra_member(self, orchestra_id: str, student_id: str) -> OrchestraRecord:
        return asyncio.run(
            self._send_for(
                "POST",
                f"{ORCHESTRA_PATH}/{orchestra_id}/members",
                OrchestraRecord,
                ("orchestra", orchestra_id),
                json={"studentId": student_id},
            )
        )

    def remove_orchestra_member(self, orchestra_id: str, student_id: str) -> OrchestraRecord:
        return asyncio.run(
            self._send_for(
                "DELETE",
                f"{ORCHESTRA_PATH}/{orchestra_id}/members/{student_id}",
                OrchestraRecord,
                ("orchestra", orchestra_id),
            )
        )

    # Theory lessons

    def fetch_theory_lesson(self, lesson_id: str) -> TheoryLessonRecord:
        path = f"{THEORY_PATH}/{lesson_id}"
        return asyncio.run(self._fetch_one(path, TheoryLessonRecord, "theory_lesson", lesson_id))

    def list_theory_lessons(self) -> list[TheoryLessonRecord]:
        return asyncio.run(self._fetch_many(THEORY_PATH, TheoryLessonRecord))

    def update_theory_students(
        self,
        lesson_id: str,
        change: Callable[[set[str]], None],
    ) -> TheoryLessonRecord:
        """Read the lesson, apply ``change`` to its student id set, write it back."""
        return asyncio.run(self._update_theory_async(lesson_id, change))

    # Generic records and deletion

    def fetch_record(self, path: str, record_id: str, kind: str) -> dict[str, Any]:
        return asyncio.run(self._fetch_raw(f"{path}/{record_id}", (kind, record_id)))

    def find_records(
        self, collection: str, *, field: str, ids: Iterable[str]
    ) -> list[dict[str, Any]]:
        return asyncio.run(self._find_records_async(collection, field, sorted(set(ids))))

    def delete_record(self, collection: str, record_id: str) -> None:
        asyncio.run(self._delete_async(f"{collection}/{record_id}", (collection, record_id)))

    def preview_deletion(self, path: str, root_id: str) -> DeletionPreview:
        return asyncio.run(
            self._send_for(
                "POST",
                f"admin/{path}/{root_id}/deletion-preview",
                DeletionPreview,
                (path, root_id),
                json={"includeDetails": True, "validateIntegrity": True},
            )
        )

    def execute_deletion(
        self, path: str, root_id: str, payload: Mapping[str, Any]
    ) -> DeletionExecution:
        return asyncio.run(
            self._send_for(
                "DELETE",
                f"admin/{path}/{root_id}/cascade",
                DeletionExecution,
                (path, root_id),
                json=dict(payload),
            )
        )

    def send_notification(
        self, recipient_ids: Iterable[str], *, subject: str, message: str
    ) -> None:
        payload = {"recipientIds": sorted(recipient_ids), "subject": subject, "message": message}
        asyncio.run(self._post_raw(NOTIFICATION_PATH, payload))

    # Internals

    async def _fetch_students_async(self, student_ids: list[str]) -> list[StudentRecord]:
        async with self._client_factory(self._resilience) as client:
            return list(
                await asyncio.gather(
                    *(
                        self._get_model(
                            client, f"{STUDENT_PATH}/{sid}", StudentRecord, ("student", sid)
                        )
                        for sid in student_ids
                    )
                )
            )

    async def _patch_student_async(
        self, student_id: str, enrollments: Mapping[str, list[str]]
    ) -> StudentRecord:
        path = f"{STUDENT_PATH}/{student_id}"
        async with self._client_factory(self._resilience) as client:
            document = _expect_object(
                _json(await self._call(client, "GET", path, ("student", student_id)), path), path
            )
            current = document.get("enrollments") or {}
            document["enrollments"] = {**current, **enrollments}
            response = await self._call(client, "PUT", path, ("student", student_id), json=document)
            return _validate(StudentRecord, _json(response, path), path)

    async def _update_theory_async(
        self, lesson_id: str, change: Callable[[set[str]], None]
    ) -> TheoryLessonRecord:
        path = f"{THEORY_PATH}/{lesson_id}"
        async with self._client_factory(self._resilience) as client:
            document = _expect_object(
                _json(await self._call(client, "GET", path, ("theory_lesson", lesson_id)), path),
                path,
            )
            student_ids = set(document.get("studentIds") or [])
            change(student_ids)
            document["studentIds"] = sorted(student_ids)
            target = ("theory_lesson", lesson_id)
            response = await self._call(client, "PUT", path, target, json=document)
            return _validate(TheoryLessonRecord, _json(response, path), path)

    async def _find_records_async(
        self, collection: str, field: str, ids: list[str]
    ) -> list[dict[str, Any]]:
        if not ids:
            return []
        async with self._client_factory(self._resilience) as client:
            params = {field: ",".join(ids)}
            response = await self._call(client, "GET", collection, None, params=params)
            return _expect_list(_json(response, collection), collection)

    async def _fetch_one[M: BaseModel](
        self, path: str, model: type[M], kind: str, entity_id: str
    ) -> M:
        async with self._client_factory(self._resilience) as client:
            return await self._get_model(client, path, model, (kind, entity_id))

    async def _fetch_many[M: BaseModel](self, path: str, model: type[M]) -> list[M]:
        async with self._client_factory(self._resilience) as client:
            response = await self._call(client, "GET", path, None)
            items = _expect_list(_json(response, path), path)
            return [_validate(model, item, path) for item in items]

    async def _fetch_raw(self, path: str, target: tuple[str, str]) -> dict[str, Any]:
        async with self._client_factory(self._resilience) as client:
            response = await self._call(client, "GET", path, target)
            return _expect_object(_json(response, path), path)

    async def _delete_async(self, path: str, target: tuple[str, str]) -> None:
        async with self._client_factory(self._resilience) as client:
            await self._call(client, "DELETE", path, target)

    async def _post_raw(self, path: str, payload: dict[str, Any]) -> None:
        async with self._client_factory(self._resilience) as client:
            await self._call(client, "POST", path, None, json=payload)

    async def _send_for[M: BaseModel](
        self,
        method: str,
        path: str,
        model: type[M],
        target: tuple[str, str],
        **kwargs: Any,
    ) -> M:
        async with self._client_factory(self._resilience) as client:
            response = await self._call(client, method, path, target, **kwargs)
            return _validate(model, _json(response, path), path)

    async def _get_model[M: BaseModel](
        self,
        client: ResilientClient,
        path: str,
        model: type[M],
        target: tuple[str, str],
    ) -> M:
        response = await self._call(client, "GET", path, target)
        return _validate(model, _json(response, path), path)

    async def _call(
        self,
        client: ResilientClient,
        method: str,
        path: str,
        target: tuple[str, str] | None,
        **kwargs: Any,
    ) -> httpx.Response:
        options: RequestOptions = kwargs  # type: ignore[assignment]
        try:
            response = await client.request(method, path, **options)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == httpx.codes.NOT_FOUND and target is not None:
                raise NotFoundError(*target) from exc
            if (
                status >= httpx.codes.INTERNAL_SERVER_ERROR
                or status == httpx.codes.TOO_MANY_REQUESTS
            ):
                raise BackendNetworkError(
                    f"{method} {path} failed with HTTP {status}", status_code=status
                ) from exc
            raise ConservatoryAPIError(f"{method} {path} rejected with HTTP {status}") from exc
        except httpx.HTTPError as exc:
            raise BackendNetworkError(f"{method} {path} failed: {exc}") from exc
        log.debug("%s %s -> %d", method, path, response.status_code)
        return response


def _json(response: httpx.Response, path: str) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise ConservatoryAPIError(f"Response for {path} is not JSON") from exc


def _expect_object(payload: object, path: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ConservatoryAPIError(f"Unexpected response payload for {path}")
    return payload  # type: ignore[return-value]


def _expect_list(payload: object, path: str) -> list[dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]
    if not isinstance(payload, list):
        raise ConservatoryAPIError(f"Unexpected response payload for {path}")
    return [item for item in payload if isinstance(item, dict)]


def _validate[M: BaseModel](model: type[M], payload: object, path: str) -> M:
    if not isinstance(payload, dict):
        raise ConservatoryAPIError(f"Unexpected response payload for {path}")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ConservatoryAPIError(f"Invalid response payload for {path}: {exc}") from exc
