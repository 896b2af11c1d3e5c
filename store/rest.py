"""
Hosted backend adapter: PostgREST for tables, GoTrue admin API for identities.

Queries are translated into PostgREST syntax:
- embeds become `name:collection(...)`, with `!inner` for inner joins
- filters become `field=op.value`; dotted fields filter the embed
- ordering becomes `order=field.desc[,tie_break.desc]`
- exact counts are requested with `Prefer: count=exact` and read from
  the `Content-Range` response header

Embed keys are resolved by PostgREST from the foreign keys of the schema,
so `Embed.local_key` / `Embed.foreign_key` only matter to the in-memory store.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import httpx
from fastapi.encoders import jsonable_encoder

from .base import Embed, Query, QueryResult, StoreError

logger = logging.getLogger(__name__)


def build_select(fields: tuple[str, ...], embeds: tuple[Embed, ...]) -> str:
    parts = list(fields) if fields else ["*"]
    for embed in embeds:
        target = f"{embed.collection}!inner" if embed.inner else embed.collection
        parts.append(f"{embed.name}:{target}({build_select(embed.fields, embed.embeds)})")
    return ",".join(parts)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def build_params(query: Query) -> list[tuple[str, str]]:
    params = [("select", build_select(query.fields, query.embeds))]
    for flt in query.filters:
        params.append((flt.field, f"{flt.op.value}.{_format_value(flt.value)}"))
    if query.order is not None:
        direction = "desc" if query.order.descending else "asc"
        order = f"{query.order.field}.{direction}"
        if query.order.tie_break:
            order += f",{query.order.tie_break}.{direction}"
        params.append(("order", order))
    if query.offset:
        params.append(("offset", str(query.offset)))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a `Content-Range: 0-19/137` header, None when unknown."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


def _error_from_response(response: httpx.Response, collection: str) -> StoreError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or body.get("msg") or body.get("error_description") or response.text
    code = body.get("code") or body.get("error_code") or str(response.status_code)
    return StoreError(str(message or f"HTTP {response.status_code}"), code=str(code), collection=collection)


def _encode(value: Any) -> Any:
    # numeric columns take Decimals as strings to keep their scale
    return jsonable_encoder(value, custom_encoder={Decimal: str})


def _decode_body(response: httpx.Response, collection: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        logger.error("Undecodable response from %s: %s", response.request.url, response.text[:200])
        raise StoreError("Response body is not valid JSON", code="invalid_response", collection=collection) from exc


class RestStore:
    """DataStore and AuthProvider talking to a hosted PostgREST/GoTrue pair."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("A store URL is required for the REST backend")
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        collection: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise StoreError(str(exc) or exc.__class__.__name__, code="network", collection=collection) from exc
        if response.is_error:
            raise _error_from_response(response, collection)
        return response

    async def create_credential(
        self,
        email: str,
        password: str,
        confirmed: bool,
        metadata: dict[str, Any],
    ) -> str:
        response = await self._send(
            "POST",
            "/auth/v1/admin/users",
            "auth.users",
            json={
                "email": email,
                "password": password,
                "email_confirm": confirmed,
                "user_metadata": _encode(metadata),
            },
        )
        body = _decode_body(response, "auth.users")
        if not isinstance(body, dict):
            raise StoreError("Unexpected identity payload", code="invalid_response", collection="auth.users")
        user = body.get("user", body)
        return str(user["id"])

    async def create_record(self, collection: str, fields: dict[str, Any]) -> str:
        response = await self._send(
            "POST",
            f"/rest/v1/{collection}",
            collection,
            json=_encode(fields),
            headers={"Prefer": "return=representation"},
        )
        return self._returned_id(response, collection, fields)

    async def upsert_record(self, collection: str, fields: dict[str, Any], on_conflict: str) -> str:
        response = await self._send(
            "POST",
            f"/rest/v1/{collection}",
            collection,
            params={"on_conflict": on_conflict},
            json=_encode(fields),
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return self._returned_id(response, collection, fields)

    async def query_records(self, query: Query) -> QueryResult:
        headers = {"Prefer": "count=exact"} if query.count else {}
        response = await self._send(
            "GET",
            f"/rest/v1/{query.collection}",
            query.collection,
            params=build_params(query),
            headers=headers,
        )
        total = parse_content_range(response.headers.get("content-range")) if query.count else None
        rows = _decode_body(response, query.collection)
        if not isinstance(rows, list):
            raise StoreError("Expected a list of rows", code="invalid_response", collection=query.collection)
        return QueryResult(rows=rows, total_count=total)

    @staticmethod
    def _returned_id(response: httpx.Response, collection: str, fields: dict[str, Any]) -> str:
        rows = _decode_body(response, collection) if response.content else []
        row = rows[0] if isinstance(rows, list) and rows and isinstance(rows[0], dict) else fields
        return str(row.get("id") or row.get("user_id") or "")


__all__ = ["RestStore", "build_params", "build_select", "parse_content_range"]
