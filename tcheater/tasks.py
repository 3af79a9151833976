"""Task list scraped from the project-management web app.

The app has no API: we log in with a form post, keep the session cookie, and
read the task table out of the list page HTML.
"""

from __future__ import annotations

import logging
from html.parser import HTMLParser

import requests

from .config import Credentials
from .models import Task

LOGIN_COOKIE = "LoginCookie"
REQUEST_TIMEOUT_SECONDS = 20

logger = logging.getLogger(__name__)


class TaskListError(RuntimeError):
    """Login or task-list retrieval failed."""


def fetch_tasks(credentials: Credentials, session: requests.Session | None = None) -> list[Task]:
    if not credentials.task_list_url:
        raise TaskListError("No task_list_url configured in [auth].")

    session = session or requests.Session()
    try:
        login(session, credentials)
        response = session.get(credentials.task_list_url, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise TaskListError(f"Task list request failed: {exc}") from exc

    tasks = parse_task_list(response.text)
    logger.info("Fetched %d tasks", len(tasks))
    return tasks


def login(session: requests.Session, credentials: Credentials) -> None:
    response = session.post(
        credentials.login_url,
        data={
            "action": "login",
            "taskID": "0",
            "username": credentials.username,
            "password": credentials.password,
        },
        allow_redirects=False,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    if LOGIN_COOKIE not in response.cookies and LOGIN_COOKIE not in session.cookies:
        raise TaskListError(f"{LOGIN_COOKIE} not found in login response")


def parse_task_list(html: str) -> list[Task]:
    parser = _TaskTableParser()
    parser.feed(html)
    parser.close()

    tasks: list[Task] = []
    for row in parser.rows:
        raw_id = row["id"]
        try:
            task_id = int(str(raw_id).strip())
        except ValueError as exc:
            raise TaskListError(f"Unparsable task id: {raw_id!r}") from exc
        cells = row["cells"]
        name = cells[5] if len(cells) > 5 else ""
        spent, total = _split_hours(row["hours"])
        tasks.append(Task(id=task_id, name=name, spent=spent, total=total))

    tasks.sort(key=lambda task: task.id, reverse=True)
    return tasks


def _split_hours(raw: str | None) -> tuple[str | None, str | None]:
    if raw is None:
        return None, None
    content = raw.replace("\xa0", "")
    parts = content.split("/")
    if len(parts) == 2:
        return parts[0].strip(), parts[1].strip()
    return parts[0].strip(), None


def _has_class(attrs: dict[str, str | None], name: str, exact: bool = False) -> bool:
    classes = (attrs.get("class") or "").split()
    if exact:
        return classes == [name]
    return any(name in value for value in classes)


class _TaskTableParser(HTMLParser):
    """Collects ``div.TaskList > table > tbody > tr`` rows."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.rows: list[dict] = []
        self._task_list_depth = 0
        self._div_depth = 0
        self._in_tbody = False
        self._row: dict | None = None
        self._cell: list[str] | None = None
        self._cell_depth = 0
        self._hours: list[str] | None = None

    def handle_starttag(self, tag: str, attrs_list: list[tuple[str, str | None]]) -> None:
        attrs = dict(attrs_list)
        if tag == "div":
            self._div_depth += 1
            if not self._task_list_depth and _has_class(attrs, "TaskList", exact=True):
                self._task_list_depth = self._div_depth
            return
        if not self._task_list_depth:
            return

        if tag == "tbody":
            self._in_tbody = True
        elif tag == "tr" and self._in_tbody and self._row is None:
            data_id = attrs.get("data-id")
            if data_id is not None:
                self._row = {"id": data_id, "cells": [], "hours": None}
        elif tag in {"td", "th"} and self._row is not None:
            if self._cell is None:
                self._cell = []
                self._cell_depth = 1
            else:
                self._cell_depth += 1
        elif tag == "span" and self._row is not None and self._row["hours"] is None:
            if self._hours is None and _has_class(attrs, "hour"):
                self._hours = []

    def handle_endtag(self, tag: str) -> None:
        if tag == "div":
            if self._task_list_depth == self._div_depth:
                self._task_list_depth = 0
            self._div_depth = max(0, self._div_depth - 1)
            return
        if not self._task_list_depth:
            return

        if tag == "tbody":
            self._in_tbody = False
        elif tag == "tr" and self._row is not None:
            self.rows.append(self._row)
            self._row = None
            self._cell = None
        elif tag in {"td", "th"} and self._cell is not None and self._row is not None:
            self._cell_depth -= 1
            if self._cell_depth == 0:
                self._row["cells"].append(" ".join("".join(self._cell).split()))
                self._cell = None
        elif tag == "span" and self._hours is not None and self._row is not None:
            self._row["hours"] = "".join(self._hours)
            self._hours = None

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)
        if self._hours is not None:
            self._hours.append(data)
