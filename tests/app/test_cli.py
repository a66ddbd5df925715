from __future__ import annotations

import pytest

from inboxkit.domain.errors import InboxValidationError, NotFoundError
from inboxkit.domain.model import InboxItemStatus, InboxPage
from inboxkit.ui import cli
from tests.helpers.inbox import make_item, make_request


@pytest.fixture
def shutdowns(monkeypatch: pytest.MonkeyPatch) -> list[bool]:
    calls: list[bool] = []

    async def fake_shutdown() -> None:
        calls.append(True)

    monkeypatch.setattr(cli, "shutdown", fake_shutdown)
    return calls


def test_inbox_command_parses_recipient(
    monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]
) -> None:
    captured: dict[str, object] = {}

    async def fake_list_inbox(**kwargs: object) -> InboxPage:
        captured.update(kwargs)
        return InboxPage(items=[make_item(item_id="a")], next_cursor="next")

    monkeypatch.setattr(cli, "list_inbox", fake_list_inbox)

    cli.main(
        [
            "inbox",
            "--tenant",
            "acme",
            "--recipient",
            "profile:bob",
            "--status",
            "unread",
            "--limit",
            "5",
        ]
    )

    recipient = captured["recipient"]
    assert isinstance(recipient, cli.EntityRef)
    assert (recipient.kind, recipient.type, recipient.id) == ("user", "profile", "bob")
    assert captured["status"] is InboxItemStatus.UNREAD
    assert captured["limit"] == 5
    assert captured["cursor"] is None
    assert shutdowns == [True]


def test_entity_with_explicit_kind() -> None:
    entity = cli._parse_entity(" group : team : core ")  # noqa: SLF001

    assert (entity.kind, entity.type, entity.id) == ("group", "team", "core")


@pytest.mark.parametrize("value", ["bob", "a:b:c:d", "profile:"])
def test_invalid_entity_exits_with_usage_error(
    value: str, monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]
) -> None:
    async def fail(**_: object) -> None:
        raise AssertionError("should not be called")

    monkeypatch.setattr(cli, "list_pending_requests", fail)

    with pytest.raises(SystemExit) as exc:
        cli.main(["pending", "--tenant", "acme", "--target", value])

    assert exc.value.code == 2
    assert shutdowns == []


def test_mark_read_and_archive_commands(
    monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]
) -> None:
    seen: list[tuple[str, str, str]] = []

    async def fake_mark(*, tenant_id: str, item_id: str) -> object:
        seen.append(("read", tenant_id, item_id))
        return make_item(item_id=item_id)

    async def fake_archive(*, tenant_id: str, item_id: str) -> object:
        seen.append(("archive", tenant_id, item_id))
        return make_item(item_id=item_id)

    monkeypatch.setattr(cli, "mark_item_read", fake_mark)
    monkeypatch.setattr(cli, "archive_item", fake_archive)

    cli.main(["mark-read", "--tenant", "acme", "item-1"])
    cli.main(["archive", "--tenant", "acme", "item-2"])

    assert seen == [("read", "acme", "item-1"), ("archive", "acme", "item-2")]
    assert shutdowns == [True, True]


def test_pending_command_lists_requests(
    monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]
) -> None:
    captured: dict[str, object] = {}

    async def fake_pending(**kwargs: object) -> list[object]:
        captured.update(kwargs)
        request = make_request()
        request.id = "r1"
        return [request]

    monkeypatch.setattr(cli, "list_pending_requests", fake_pending)

    cli.main(["pending", "--tenant", "acme", "--target", "page:news"])

    target = captured["target"]
    assert isinstance(target, cli.EntityRef)
    assert target.key == ("page", "news")
    assert shutdowns == [True]


def test_db_upgrade_command(monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]) -> None:
    captured: dict[str, object] = {}

    async def fake_upgrade(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(cli, "upgrade_database", fake_upgrade)

    cli.main(["db-upgrade", "--database-uri", "sqlite+aiosqlite:///x.db"])

    assert captured == {"database_uri": "sqlite+aiosqlite:///x.db"}
    assert shutdowns == [True]


def test_validation_failures_exit_with_usage_error(
    monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]
) -> None:
    async def fake_list_inbox(**_: object) -> InboxPage:
        raise InboxValidationError.single("MAX_VALUE", "limit exceeds maximum of 200.", "limit")

    monkeypatch.setattr(cli, "list_inbox", fake_list_inbox)

    with pytest.raises(SystemExit) as exc:
        cli.main(["inbox", "--tenant", "acme", "--recipient", "profile:bob", "--limit", "999"])

    assert exc.value.code == 2
    assert shutdowns == [True]


def test_other_failures_exit_with_error(
    monkeypatch: pytest.MonkeyPatch, shutdowns: list[bool]
) -> None:
    async def fake_mark(**_: object) -> object:
        raise NotFoundError("inbox item", "missing")

    monkeypatch.setattr(cli, "mark_item_read", fake_mark)

    with pytest.raises(SystemExit) as exc:
        cli.main(["mark-read", "--tenant", "acme", "missing"])

    assert exc.value.code == 1
    assert shutdowns == [True]


def test_missing_arguments_exit_through_argparse() -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["inbox", "--tenant", "acme"])

    assert exc.value.code == 2
