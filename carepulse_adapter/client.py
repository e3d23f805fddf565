"""Async Appwrite REST client covering databases, storage, users and messaging.
Authenticates as a server with the project's API key.
"""
from __future__ import annotations
import json
import secrets
import time
from typing import Any
import httpx
from .config import AppwriteSettings


class AppwriteError(Exception):
    """Non-2xx answer from Appwrite, or the request never got one."""

    def __init__(self, message: str, code: int | None = None, type: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.type = type

    @property
    def not_found(self) -> bool:
        return self.code == 404

    @property
    def conflict(self) -> bool:
        return self.code == 409


class Query:
    """Builders for the JSON query strings Appwrite takes in ``queries[]``."""

    @staticmethod
    def _encode(method: str, attribute: str | None = None, values: list[Any] | None = None) -> str:
        payload: dict[str, Any] = {"method": method}
        if attribute is not None:
            payload["attribute"] = attribute
        if values is not None:
            payload["values"] = values
        return json.dumps(payload, separators=(",", ":"))

    @staticmethod
    def equal(attribute: str, values: list[Any]) -> str:
        return Query._encode("equal", attribute, values)

    @staticmethod
    def order_desc(attribute: str) -> str:
        return Query._encode("orderDesc", attribute)

    @staticmethod
    def order_asc(attribute: str) -> str:
        return Query._encode("orderAsc", attribute)

    @staticmethod
    def limit(count: int) -> str:
        return Query._encode("limit", values=[count])


def unique_id(padding: int = 7) -> str:
    """Time-ordered id in the same shape the Appwrite SDKs generate client side."""
    now = time.time()
    sec = int(now)
    usec = int((now - sec) * 1_000_000)
    return f"{sec:x}{usec:05x}" + secrets.token_hex(padding)[:padding]


class AppwriteClient:
    def __init__(self, settings: AppwriteSettings):
        self.settings = settings

    @classmethod
    def from_env(cls) -> "AppwriteClient":
        return cls(AppwriteSettings.from_env())

    def _headers(self) -> dict[str, str]:
        headers = {
            "X-Appwrite-Project": self.settings.project_id,
            "X-Appwrite-Response-Format": "1.5.0",
            "Accept": "application/json",
        }
        if self.settings.api_key:
            headers["X-Appwrite-Key"] = self.settings.api_key
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                http2=True, timeout=self.settings.timeout, base_url=self.settings.endpoint
            ) as client:
                resp = await client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise AppwriteError(f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            try:
                payload = resp.json()
            except ValueError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            raise AppwriteError(
                payload.get("message") or resp.text or resp.reason_phrase,
                code=resp.status_code,
                type=payload.get("type"),
            )
        if not resp.content:
            return {}
        try:
            payload = resp.json()
        except ValueError as exc:
            raise AppwriteError(f"{method} {path} returned a non-JSON body", code=resp.status_code) from exc
        if not isinstance(payload, dict):
            raise AppwriteError(f"{method} {path} returned unexpected JSON", code=resp.status_code)
        return payload

    # Databases -------------------------------------------------------------

    def _documents_path(self, collection_id: str) -> str:
        return f"/databases/{self.settings.database_id}/collections/{collection_id}/documents"

    async def create_document(self, collection_id: str, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST",
            self._documents_path(collection_id),
            json={"documentId": document_id, "data": data},
        )

    async def get_document(self, collection_id: str, document_id: str) -> dict[str, Any]:
        return await self._request("GET", f"{self._documents_path(collection_id)}/{document_id}")

    async def list_documents(self, collection_id: str, queries: list[str] | None = None) -> dict[str, Any]:
        """Return ``{"total": int, "documents": [...]}``."""
        params = {"queries[]": queries} if queries else None
        return await self._request("GET", self._documents_path(collection_id), params=params)

    async def update_document(self, collection_id: str, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"{self._documents_path(collection_id)}/{document_id}",
            json={"data": data},
        )

    # Storage ---------------------------------------------------------------

    async def create_file(self, bucket_id: str, file_id: str, file_name: str, content: bytes) -> dict[str, Any]:
        # Single request upload; Appwrite wants chunked uploads above 5MB.
        return await self._request(
            "POST",
            f"/storage/buckets/{bucket_id}/files",
            data={"fileId": file_id},
            files={"file": (file_name, content)},
        )

    def file_view_url(self, bucket_id: str, file_id: str) -> str:
        endpoint = self.settings.endpoint.rstrip("/")
        return f"{endpoint}/storage/buckets/{bucket_id}/files/{file_id}/view?project={self.settings.project_id}"

    # Users -----------------------------------------------------------------

    async def create_user(
        self,
        user_id: str,
        email: str | None = None,
        phone: str | None = None,
        password: str | None = None,
        name: str | None = None,
    ) -> dict[str, Any]:
        body = {"userId": user_id, "email": email, "phone": phone, "password": password, "name": name}
        return await self._request("POST", "/users", json={k: v for k, v in body.items() if v is not None})

    async def get_user(self, user_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}")

    async def list_users(self, queries: list[str] | None = None) -> dict[str, Any]:
        """Return ``{"total": int, "users": [...]}``."""
        params = {"queries[]": queries} if queries else None
        return await self._request("GET", "/users", params=params)

    # Messaging -------------------------------------------------------------

    async def create_sms(
        self,
        message_id: str,
        content: str,
        topics: list[str] | None = None,
        users: list[str] | None = None,
        targets: list[str] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/messaging/messages/sms",
            json={
                "messageId": message_id,
                "content": content,
                "topics": topics or [],
                "users": users or [],
                "targets": targets or [],
            },
        )
