from __future__ import annotations

from guildvault.constants import COLORS
from guildvault.error_handlers import describe_error
from guildvault.errors import BackupNotFound, PreconditionError, StorageError
from guildvault.restore.reporting import RestoreReport
from guildvault.utils import report_embed, truncate_text

from conftest import make_document


def test_describe_error_names_missing_permissions():
    text = describe_error(PreconditionError("nope", ["manage_roles", "ban_members"]))
    assert "manage_roles, ban_members" in text


def test_describe_error_hides_storage_details():
    assert "unavailable" in describe_error(StorageError("disk on fire at /var/x"))
    assert "`abc`" in describe_error(BackupNotFound("abc"))
    assert "Check the bot logs" in describe_error(KeyError("x"))


def test_report_embed_lists_failures():
    report = RestoreReport(document=make_document())
    report.ok("role", "Admin")
    report.failed("role", "Mod", "Forbidden")
    report.skipped("channel", "orphan", "parent missing")

    embed = report_embed(report)
    fields = {f.name: f.value for f in embed.fields}
    assert embed.colour.value == COLORS["warning"]
    assert fields["role"] == "1 ok, 1 failed"
    assert fields["channel"] == "1 skipped"
    assert "**Mod**: Forbidden" in fields["Failures"]


def test_clean_report_is_green():
    report = RestoreReport(document=make_document())
    report.ok("role", "Admin")
    assert report_embed(report).colour.value == COLORS["success"]


def test_truncate_text():
    assert truncate_text("abc", 5) == "abc"
    assert truncate_text("abcdef", 4) == "abc…"
