"""
HTTP client for the task-management REST API.

Every call returns decoded JSON or raises ApiError. Callers decide what to
do with the failure; nothing here retries.
"""
import logging
from typing import Optional, Dict, Any, List

import requests

from .errors import ApiError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"


class ApiClient:
    """Thin wrapper over `requests` for the /tasks, /projects and /auth endpoints."""

    def __init__(self, base_url: str = DEFAULT_API_URL, token: Optional[str] = None,
                 timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """Send one request; return the decoded body or raise ApiError."""
        url = f"{self.base_url}{endpoint}"
        try:
            r = requests.request(
                method,
                url,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, endpoint, e)
            raise ApiError(str(e) or "API Error") from e

        try:
            data = r.json()
        except ValueError:
            data = {}

        if not r.ok:
            if not isinstance(data, dict):
                data = {}
            message = data.get("error") or data.get("message") or "API Error"
            logger.warning("%s %s -> %s: %s", method, endpoint, r.status_code, message)
            raise ApiError(message, status=r.status_code)
        return data

    # ── Tasks ────────────────────────────────────────────────────────────────

    def list_tasks(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/tasks")

    def create_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/tasks", payload)

    def update_task(self, task_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/tasks/{task_id}", payload)

    def delete_task(self, task_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/tasks/{task_id}")

    def complete_task(self, task_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/tasks/{task_id}/complete")

    # ── Projects ─────────────────────────────────────────────────────────────

    def list_projects(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/projects")

    def create_project(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/projects", payload)

    def update_project(self, project_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/projects/{project_id}", payload)

    def delete_project(self, project_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/projects/{project_id}")

    # ── Auth ─────────────────────────────────────────────────────────────────

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self.request("POST", "/auth/login", {"email": email, "password": password})

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        return self.request(
            "POST", "/auth/register",
            {"name": name, "email": email, "password": password},
        )
