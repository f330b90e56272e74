"""Tests for the two-step deletion protocol."""

from datetime import datetime, timezone

import pytest

from conftest import RecordingAuditSink, make_callback, make_message
from custodian import messages
from custodian.context import build_context
from custodian.exceptions import NotFoundError, PermissionDeniedError, StorageError

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def stored_files(file_repo):
    """bob (100) owns files 1 and 2, alice (200) owns file 3."""
    return [
        file_repo.save_file(100, "a.txt", "text/plain", b"a", NOW),
        file_repo.save_file(100, "b.txt", "text/plain", b"b", NOW),
        file_repo.save_file(200, "c.txt", "text/plain", b"c", NOW),
    ]


class TestDeletionRequest:
    """Test the confirmation prompt."""

    @pytest.mark.asyncio
    async def test_owner_gets_confirmation_prompt(self, ctx, messenger, active_user, stored_files):
        await ctx.deletion.request_single(100, active_user, 1)

        assert messenger.of_kind("confirmation") == [(
            "confirmation",
            100,
            messages.DELETE_CONFIRM_SINGLE.format(file_name="a.txt"),
            "confirm_delete_1",
            "cancel_delete_1",
        )]

    @pytest.mark.asyncio
    async def test_admin_may_request_any_file(self, ctx, messenger, admin_user, stored_files):
        await ctx.deletion.request_single(200, admin_user, 1)

        assert messenger.of_kind("confirmation")[0][3] == "confirm_delete_1"

    @pytest.mark.asyncio
    async def test_foreign_file_is_denied(self, ctx, messenger, active_user, stored_files):
        with pytest.raises(PermissionDeniedError):
            await ctx.deletion.request_single(100, active_user, 3)

        assert messenger.sent == []

    @pytest.mark.asyncio
    async def test_missing_file_is_not_found(self, ctx, active_user):
        with pytest.raises(NotFoundError):
            await ctx.deletion.request_single(100, active_user, 99)

    @pytest.mark.asyncio
    async def test_request_all_prompt(self, ctx, messenger, active_user):
        await ctx.deletion.request_all(100, active_user)

        assert messenger.of_kind("confirmation") == [(
            "confirmation",
            100,
            messages.DELETE_CONFIRM_ALL,
            "confirm_delete_all",
            "cancel_delete_all",
        )]


class TestDeletionResolution:
    """Test DeletionService.resolve for every token kind."""

    @pytest.mark.asyncio
    async def test_confirm_single_removes_exactly_that_file(self, ctx, messenger, file_repo, audit_sink, stored_files):
        await ctx.deletion.resolve(make_callback("confirm_delete_1"))

        assert [f.id for f in file_repo.get_all_files()] == [2, 3]
        assert messenger.texts == [messages.DELETE_SUCCESS_SINGLE]
        assert messenger.answered == ["cb-1"]
        assert audit_sink.deleted_files == [1]

    @pytest.mark.asyncio
    async def test_confirm_all_removes_only_requesters_files(
        self, ctx, messenger, file_repo, audit_sink, stored_files
    ):
        await ctx.deletion.resolve(make_callback("confirm_delete_all"))

        assert [f.id for f in file_repo.get_all_files()] == [3]
        assert messenger.texts == [messages.DELETE_SUCCESS_ALL]
        assert messenger.answered == ["cb-1"]
        assert audit_sink.deleted_owners == [100]

    @pytest.mark.asyncio
    async def test_confirm_all_without_files_skips_audit(self, ctx, messenger, audit_sink):
        await ctx.deletion.resolve(make_callback("confirm_delete_all"))

        assert messenger.texts == [messages.DELETE_SUCCESS_ALL]
        assert audit_sink.deleted_owners == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token, notice", [
        ("cancel_delete_1", messages.DELETE_CANCELLED_SINGLE),
        ("cancel_delete_all", messages.DELETE_CANCELLED_ALL),
    ])
    async def test_cancel_leaves_storage_unchanged(self, ctx, messenger, file_repo, stored_files, token, notice):
        await ctx.deletion.resolve(make_callback(token))

        assert len(file_repo.get_all_files()) == 3
        assert messenger.texts == [notice]
        assert messenger.answered == ["cb-1"]

    @pytest.mark.asyncio
    async def test_unknown_token_is_acknowledged(self, ctx, messenger, file_repo, stored_files):
        await ctx.deletion.resolve(make_callback("drop_everything"))

        assert len(file_repo.get_all_files()) == 3
        assert messenger.texts == [messages.UNKNOWN_ACTION]
        assert messenger.answered == ["cb-1"]

    @pytest.mark.asyncio
    async def test_out_of_range_id_is_unknown_action(self, ctx, messenger, file_repo, stored_files):
        await ctx.deletion.resolve(make_callback("confirm_delete_99999999999999999999"))

        assert len(file_repo.get_all_files()) == 3
        assert messenger.texts == [messages.UNKNOWN_ACTION]
        assert messenger.answered == ["cb-1"]

    @pytest.mark.asyncio
    async def test_storage_failure_reports_error_and_acknowledges(
        self, ctx, messenger, repository, file_repo, audit_sink, stored_files, monkeypatch
    ):
        async def broken(file_id):
            raise StorageError("mongo down")

        monkeypatch.setattr(repository, "delete_file", broken)

        await ctx.deletion.resolve(make_callback("confirm_delete_2"))

        assert len(file_repo.get_all_files()) == 3
        assert messenger.texts == [messages.DELETE_ERROR_SINGLE]
        assert messenger.answered == ["cb-1"]
        assert audit_sink.deleted_files == []

    @pytest.mark.asyncio
    async def test_purge_failure_reports_error(self, ctx, messenger, repository, stored_files, monkeypatch):
        async def broken(user_id):
            raise StorageError("mongo down")

        monkeypatch.setattr(repository, "delete_files_by_owner", broken)

        await ctx.deletion.resolve(make_callback("confirm_delete_all"))

        assert messenger.texts == [messages.DELETE_ERROR_ALL]
        assert messenger.answered == ["cb-1"]

    @pytest.mark.asyncio
    async def test_acknowledged_even_when_reply_fails(self, ctx, messenger, stored_files, monkeypatch):
        async def broken_send(chat_id, text, remove_keyboard=False):
            raise RuntimeError("network down")

        monkeypatch.setattr(messenger, "send_text", broken_send)

        with pytest.raises(RuntimeError):
            await ctx.deletion.resolve(make_callback("cancel_delete_1"))

        assert messenger.answered == ["cb-1"]

    @pytest.mark.asyncio
    async def test_audit_failure_is_swallowed(
        self, settings, repository, messenger, http_client, file_repo, stored_files
    ):
        ctx = build_context(settings, repository, messenger, http_client, RecordingAuditSink(fail=True))

        await ctx.deletion.resolve(make_callback("confirm_delete_1"))

        assert messenger.texts == [messages.DELETE_SUCCESS_SINGLE]
        assert file_repo.get_file(1) is None


class TestDeletionCommands:
    """Test /delete and /deleteall through the dispatcher."""

    @pytest.mark.asyncio
    async def test_delete_command_prompts(self, ctx, messenger, active_user, stored_files):
        await ctx.commands.dispatch(make_message(text="/delete 2"), active_user)

        assert messenger.of_kind("confirmation")[0][3:] == ("confirm_delete_2", "cancel_delete_2")

    @pytest.mark.asyncio
    async def test_delete_foreign_file_is_denied_without_change(
        self, ctx, messenger, active_user, file_repo, stored_files
    ):
        await ctx.commands.dispatch(make_message(text="/delete 3"), active_user)

        assert messenger.texts == [messages.DELETE_PERMISSION_DENIED]
        assert messenger.of_kind("confirmation") == []
        assert len(file_repo.get_all_files()) == 3

    @pytest.mark.asyncio
    async def test_delete_missing_file(self, ctx, messenger, active_user):
        await ctx.commands.dispatch(make_message(text="/delete 77"), active_user)

        assert messenger.texts == [messages.FILE_NOT_FOUND]

    @pytest.mark.asyncio
    async def test_delete_without_id(self, ctx, messenger, active_user):
        await ctx.commands.dispatch(make_message(text="/delete"), active_user)

        assert messenger.texts == [messages.FILE_ID_MISSING.format(command="delete")]

    @pytest.mark.asyncio
    async def test_delete_with_invalid_id(self, ctx, messenger, active_user):
        await ctx.commands.dispatch(make_message(text="/delete abc"), active_user)

        assert messenger.texts == [messages.FILE_ID_INVALID]

    @pytest.mark.asyncio
    async def test_delete_with_out_of_range_id(self, ctx, messenger, active_user):
        await ctx.commands.dispatch(make_message(text="/delete 99999999999999999999"), active_user)

        assert messenger.texts == [messages.FILE_ID_INVALID]

    @pytest.mark.asyncio
    async def test_delete_all_command_prompts(self, ctx, messenger, active_user):
        await ctx.commands.dispatch(make_message(text="/deleteall"), active_user)

        assert messenger.of_kind("confirmation")[0][3:] == ("confirm_delete_all", "cancel_delete_all")
