"""Request/response envelopes for the accounting service's XML API.

Every call is a single `<request method="...">` document POSTed to the account's
`xml-in` endpoint. Responses come back as one XML document whose children depend on
the method:

    <response status="ok">
      <clients page="1" per_page="25" total="30">
        <client><client_id>7</client_id><organization>Acme</organization></client>
        ...
      </clients>
    </response>

or, when something went wrong, an `<error>` child with a human readable message.

These functions are pure (bytes in, dataclasses out and vice versa) so they can be
unit-tested without a server. Missing elements decode to zero values ("" / 0 / empty),
which is what the service's own clients have always assumed.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Callable

from .accounting_errors import DecodeError, RemoteError

CLIENT_LIST = "client.list"
PROJECT_LIST = "project.list"
TASK_LIST = "task.list"
STAFF_LIST = "staff.list"
TIME_ENTRY_CREATE = "time_entry.create"
TIME_ENTRY_UPDATE = "time_entry.update"

STATUS_OK = "ok"


@dataclass(frozen=True, slots=True)
class Client:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Project:
    id: int
    # The service sends this as an opaque string; keep it that way.
    client_id: str
    name: str
    task_ids: tuple[int, ...] = ()
    user_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class User:
    id: int
    email: str
    first_name: str
    last_name: str


@dataclass(slots=True)
class TimeEntry:
    """A time entry to create (id == 0) or update (id != 0).

    project_id, task_id, user_id and date are required by the service. Nothing is
    checked locally; the service rejects incomplete entries with an error message.
    """

    id: int = 0
    project_id: int = 0
    task_id: int = 0
    user_id: int = 0
    date: str = ""
    notes: str = ""
    hours: float = 0.0


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int = 0
    total: int = 0
    per_page: int = 0

    def has_more(self, page: int, *, default_per_page: int = 0) -> bool:
        """True when items remain beyond `page` (1-based).

        A missing or non-positive `per_page` falls back to `default_per_page` (the page
        size that was requested). If neither is usable, no further pages are assumed.
        """

        per_page = self.per_page if self.per_page > 0 else default_per_page
        if per_page <= 0:
            return False
        return self.total > per_page * page


@dataclass(frozen=True, slots=True)
class ListPage:
    pagination: Pagination = field(default_factory=Pagination)
    items: list[Any] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ListResponse:
    error: str = ""
    clients: ListPage = field(default_factory=ListPage)
    projects: ListPage = field(default_factory=ListPage)
    tasks: ListPage = field(default_factory=ListPage)
    users: ListPage = field(default_factory=ListPage)

    def raise_for_error(self) -> None:
        if self.error:
            raise RemoteError(self.error)


@dataclass(frozen=True, slots=True)
class TimeEntryResponse:
    status: str = ""
    error: str = ""
    code: str = ""
    field: str = ""
    time_entry_id: int = 0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True, slots=True)
class ListResource:
    """One paginated list method and where its page lives in a ListResponse."""

    name: str
    method: str
    extract: Callable[[ListResponse], ListPage]


CLIENTS = ListResource("clients", CLIENT_LIST, lambda r: r.clients)
PROJECTS = ListResource("projects", PROJECT_LIST, lambda r: r.projects)
TASKS = ListResource("tasks", TASK_LIST, lambda r: r.tasks)
USERS = ListResource("users", STAFF_LIST, lambda r: r.users)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _format_hours(hours: float) -> str:
    hours = float(hours)
    if hours.is_integer():
        return str(int(hours))
    return repr(hours)


def _to_bytes(root: ET.Element) -> bytes:
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _sub(parent: ET.Element, tag: str, text: object) -> ET.Element:
    el = ET.SubElement(parent, tag)
    el.text = str(text)
    return el


def encode_list_request(method: str, *, page: int, per_page: int) -> bytes:
    root = ET.Element("request", {"method": method})
    _sub(root, "per_page", per_page)
    _sub(root, "page", page)
    return _to_bytes(root)


def encode_time_entry_request(method: str, entry: TimeEntry) -> bytes:
    root = ET.Element("request", {"method": method})
    te = ET.SubElement(root, "time_entry")
    _sub(te, "time_entry_id", entry.id)
    _sub(te, "project_id", entry.project_id)
    _sub(te, "task_id", entry.task_id)
    _sub(te, "staff_id", entry.user_id)
    _sub(te, "date", entry.date)
    _sub(te, "notes", entry.notes)
    _sub(te, "hours", _format_hours(entry.hours))
    return _to_bytes(root)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _parse(data: bytes) -> ET.Element:
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise DecodeError(f"Malformed response envelope: {e}") from e


def _text(el: ET.Element, path: str) -> str:
    node = el.find(path)
    if node is None:
        return ""
    return node.text or ""


def _int(raw: str | None, what: str) -> int:
    raw = (raw or "").strip()
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError as e:
        raise DecodeError(f"Expected an integer for {what}, got {raw!r}") from e


def _pagination(el: ET.Element) -> Pagination:
    return Pagination(
        page=_int(el.get("page"), f"{el.tag}@page"),
        total=_int(el.get("total"), f"{el.tag}@total"),
        per_page=_int(el.get("per_page"), f"{el.tag}@per_page"),
    )


def _client(el: ET.Element) -> Client:
    return Client(
        id=_int(_text(el, "client_id"), "client_id"),
        name=_text(el, "organization"),
    )


def _project(el: ET.Element) -> Project:
    return Project(
        id=_int(_text(el, "project_id"), "project_id"),
        client_id=_text(el, "client_id"),
        name=_text(el, "name"),
        task_ids=tuple(_int(n.text, "task_id") for n in el.findall("tasks/task/task_id")),
        user_ids=tuple(_int(n.text, "staff_id") for n in el.findall("staff/staff/staff_id")),
    )


def _task(el: ET.Element) -> Task:
    return Task(id=_int(_text(el, "task_id"), "task_id"), name=_text(el, "name"))


def _user(el: ET.Element) -> User:
    return User(
        id=_int(_text(el, "staff_id"), "staff_id"),
        email=_text(el, "email"),
        first_name=_text(el, "first_name"),
        last_name=_text(el, "last_name"),
    )


def _list_page(
    root: ET.Element, container: str, item: str, parse: Callable[[ET.Element], Any]
) -> ListPage:
    el = root.find(container)
    if el is None:
        return ListPage()
    return ListPage(
        pagination=_pagination(el),
        items=[parse(child) for child in el.findall(item)],
    )


def decode_list_response(data: bytes) -> ListResponse:
    """Decode a response to any of the four list methods.

    A non-empty `error` is *not* raised here; call `raise_for_error()` so that decode
    failures and service errors stay distinguishable.
    """

    root = _parse(data)
    return ListResponse(
        error=_text(root, "error"),
        clients=_list_page(root, "clients", "client", _client),
        projects=_list_page(root, "projects", "project", _project),
        tasks=_list_page(root, "tasks", "task", _task),
        users=_list_page(root, "staff_members", "member", _user),
    )


def decode_time_entry_response(data: bytes) -> TimeEntryResponse:
    root = _parse(data)
    return TimeEntryResponse(
        status=root.get("status") or "",
        error=_text(root, "error"),
        code=_text(root, "code"),
        field=_text(root, "field"),
        time_entry_id=_int(_text(root, "time_entry_id"), "time_entry_id"),
    )
