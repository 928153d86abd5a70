"""Taskboard Python SDK — Client library for the Taskboard API.

Provides both async and sync clients for interacting with a Taskboard server.

Quick start::

    from taskboard.client import TaskboardClient

    client = TaskboardClient("http://localhost:8080")

    stage = client.create("stages", {})
    task = client.create("tasks", {"action": "ship", "stage": {"id": stage["id"]}})
    page = client.search("tasks", "ship")
"""

from taskboard.client.client import AsyncTaskboardClient, TaskboardAPIError, TaskboardClient

__all__ = ["AsyncTaskboardClient", "TaskboardAPIError", "TaskboardClient"]
