from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from src.core.config import get_settings
from src.core.errors import DataUnavailableError

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


class SupabaseClient:
    _shared_client: httpx.Client | None = None
    _client_lock: Lock = Lock()

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.supabase_url:
            raise ValueError("SUPABASE_URL is required for the supabase data backend")
        self.base_url = settings.supabase_url.rstrip("/") + "/rest/v1"
        self.api_key = settings.supabase_service_role_key or settings.supabase_anon_key
        if not self.api_key:
            raise ValueError("Supabase API key is required")
        self._client = self._get_shared_client()

    @classmethod
    def _get_shared_client(cls) -> httpx.Client:
        if cls._shared_client is not None:
            return cls._shared_client
        with cls._client_lock:
            if cls._shared_client is None:
                cls._shared_client = httpx.Client(
                    timeout=30.0,
                    limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
                )
        return cls._shared_client

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        headers.update(extra)
        return headers

    def select(
        self,
        table: str,
        select: str,
        filters: Optional[List[Tuple[str, str]]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: List[Tuple[str, str]] = [("select", select)]
        if filters:
            params.extend(filters)
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset is not None:
            params.append(("offset", str(offset)))
        if order:
            params.append(("order", order))

        url = f"{self.base_url}/{table}?{urlencode(params, doseq=True)}"
        try:
            response = self._client.get(url, headers=self._headers())
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Supabase read failed table=%s error=%s", table, exc)
            raise DataUnavailableError(f"Failed reading {table}", source=table) from exc
        if not isinstance(data, list):
            raise DataUnavailableError(f"Unexpected payload reading {table}", source=table)
        return data

    def select_all(
        self,
        table: str,
        select: str,
        filters: Optional[List[Tuple[str, str]]] = None,
        order: Optional[str] = None,
        page_size: int = PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        # PostgREST caps response size, so ranking inputs are read page by page.
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            batch = self.select(
                table=table,
                select=select,
                filters=filters,
                limit=page_size,
                offset=offset,
                order=order,
            )
            rows.extend(batch)
            if len(batch) < page_size:
                break
            offset += page_size
        return rows

    def insert(
        self,
        table: str,
        payload: Dict[str, Any] | List[Dict[str, Any]],
        upsert: bool = False,
        on_conflict: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: List[Tuple[str, str]] = []
        if on_conflict:
            params.append(("on_conflict", on_conflict))
        url = f"{self.base_url}/{table}"
        if params:
            url = f"{url}?{urlencode(params, doseq=True)}"
        prefer = "return=representation"
        if upsert:
            prefer = "resolution=merge-duplicates,return=representation"
        headers = self._headers(**{"Content-Type": "application/json", "Prefer": prefer})
        try:
            response = self._client.post(url, headers=headers, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Supabase write failed table=%s error=%s", table, exc)
            raise DataUnavailableError(f"Failed writing {table}", source=table) from exc
        if not response.content:
            return []
        data = response.json()
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return [data]
        return []
