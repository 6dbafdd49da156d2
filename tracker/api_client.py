# tracker/api_client.py
"""
HTTP client for the request-tracker API.

Method names mirror SyncOrchestrator so a RequestTracker can run against the
service or in-process without knowing which. Every failure (transport error,
non-2xx status, unparseable body) is raised as ApiError.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from tracker import monitoring
from tracker.processors.normalizer import normalize_requests
from tracker.schemas import RequestItem, RequestPatch

DEFAULT_TIMEOUT_S = 20.0


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class ApiClient:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        headers = {"x-api-key": api_key} if api_key else {}
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout_s)

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            monitoring.logger.warning("API request failed", extra={"method": method, "path": path, "error": str(e)})
            raise ApiError(f"{method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            error_code, message = None, resp.text
            try:
                body = resp.json()
                error_code = body.get("error_code")
                message = body.get("error") or message
            except ValueError:
                pass
            raise ApiError(message, status_code=resp.status_code, error_code=error_code)
        return resp

    def _json(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {resp.request.url}", status_code=resp.status_code) from e

    def read_requests(self) -> Tuple[List[RequestItem], str]:
        resp = self._call("GET", "/api/requests")
        body = self._json(resp)
        if not isinstance(body, list):
            raise ApiError("Expected a list of requests", status_code=resp.status_code)
        return normalize_requests(body), resp.headers.get("x-data-source", "")

    def update_request(self, request_id: str, patch: Union[RequestPatch, Mapping[str, Any]]) -> Dict[str, Any]:
        wire = patch.to_wire() if isinstance(patch, RequestPatch) else dict(patch)
        wire["id"] = request_id
        return self._json(self._call("PUT", "/api/requests", json=wire))

    def create_request(self, raw: Union[RequestItem, Mapping[str, Any]]) -> Dict[str, Any]:
        data = raw.to_wire(include_derived=False) if isinstance(raw, RequestItem) else dict(raw)
        return self._json(self._call("POST", "/api/requests", json=data))

    def delete_request(self, request_id: str) -> Dict[str, Any]:
        return self._json(self._call("DELETE", "/api/requests", params={"id": request_id}))

    def export_requests(self, raws: Sequence[Union[RequestItem, Mapping[str, Any]]]) -> Dict[str, Any]:
        body = [r.to_wire(include_derived=False) if isinstance(r, RequestItem) else dict(r) for r in raws]
        return self._json(self._call("POST", "/api/sync", json=body))
