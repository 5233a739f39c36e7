"""Todo API gateway - HTTP client for a remote To-do Tracker API.

The view layer talks to the task service across a network hop through this
client, never in-process. Each call is independent: no retries, and a
failure is raised to the caller with the upstream status attached.
"""

import logging
from datetime import date
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class TodoGatewayError(Exception):
    """The upstream API answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class TodoGatewayTimeout(TodoGatewayError):
    """The upstream API did not answer in time."""

    pass


class TodoGatewayClient:
    """Client for the To-do Tracker resource API.

    Usage:
        with TodoGatewayClient("http://localhost:8080") as client:
            todos = client.find_all()
            todo = client.create({"title": "Buy milk", ...})
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, json: dict | None = None) -> Any:
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise TodoGatewayTimeout(f"Timed out calling {method} {path}") from e
        except httpx.TransportError as e:
            raise TodoGatewayError(f"Could not reach todo API: {e}") from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            # redirects are not followed; only 4xx/5xx are passed through
            raise TodoGatewayError(
                f"{method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code if response.is_error else None,
                response=body,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TodoGatewayError(
                f"{method} {path} returned a non-JSON body",
                response=response.text,
            ) from e

    # Resource API contract

    def find_all(self) -> list[dict]:
        return self._request("GET", "/findAll")

    def find_by_id(self, todo_id: int) -> dict:
        return self._request("GET", f"/find/{todo_id}")

    def delete_by_id(self, todo_id: int) -> bool:
        return bool(self._request("DELETE", f"/deleteById/{todo_id}"))

    def update(self, todo: dict) -> dict:
        return self._request("PUT", "/update", json=todo)

    def create(self, todo: dict) -> dict:
        return self._request("POST", "/create", json=todo)

    def get_status(self) -> list[str]:
        return self._request("GET", "/getStatus")


# View composition

def empty_todo_payload() -> dict:
    """Placeholder for a task that has not been stored yet."""
    return {
        "id": 0,
        "title": "",
        "description": "",
        "dueDate": date.today().isoformat(),
        "completionDate": None,
        "status": "",
        "comments": [],
    }


def compose_home_view(client: TodoGatewayClient) -> dict:
    """Payload for the landing page: every task."""
    return {"todoList": client.find_all()}


def compose_item_view(client: TodoGatewayClient, action: str, todo_id: int) -> dict:
    """Payload for the single-task page: the task, the action and the status list.

    An id of 0 yields an empty placeholder task for the "new task" form.
    """
    todo = client.find_by_id(todo_id) if todo_id else empty_todo_payload()
    return {
        "todoItem": todo,
        "action": action,
        "todoStatus": client.get_status(),
    }
