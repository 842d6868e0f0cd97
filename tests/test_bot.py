"""
Smoke tests for bot wiring, error reporting and the cog helpers
"""

from types import SimpleNamespace

import discord
from discord import app_commands

from services.tickets_service import DispatchReport
from utils.errors import InsufficientBalance, MessagingFailure, NotFound
from utils.messages import Messages


def test_core_imports():
    import bot  # noqa: F401
    import config  # noqa: F401
    import database  # noqa: F401
    from cogs import infractions, rules, stars, support  # noqa: F401
    from utils import checks, embeds, messages, messaging  # noqa: F401


async def test_database_lifecycle(tmp_path):
    from database import Database

    db = Database(str(tmp_path / "smoke.db"))
    await db.init_pool()

    assert db._validate_guild_id(123456789) == 123456789
    try:
        db._validate_guild_id(-1)
    except ValueError:
        pass
    else:
        raise AssertionError("Validation should have failed for negative ID")

    await db.close()
    assert db._pool is None


def test_messages_format():
    text = Messages.format(Messages.TICKET_CREATED, ticket_id=3, count=2)
    assert text == "🎫 Ticket **#3** created in 2 support channel(s)."


class _Response:
    def __init__(self, done=False):
        self.done = done
        self.sent = []

    def is_done(self):
        return self.done

    async def send_message(self, **kwargs):
        self.sent.append(kwargs)


class _Followup:
    def __init__(self):
        self.sent = []

    async def send(self, **kwargs):
        self.sent.append(kwargs)


def _interaction(done=False):
    return SimpleNamespace(
        user="tester#0001",
        command=SimpleNamespace(qualified_name="goldstar give"),
        response=_Response(done),
        followup=_Followup(),
    )


def _invoke_error(original):
    return app_commands.CommandInvokeError(SimpleNamespace(name="give"), original)


class TestErrorHandler:
    async def test_bot_errors_become_error_embeds(self, db):
        from bot import KingsBot

        bot = KingsBot(db=db)
        interaction = _interaction()

        await bot.on_app_command_error(interaction, _invoke_error(InsufficientBalance(1, 1, 0)))

        sent = interaction.response.sent[0]
        assert sent["ephemeral"] is True
        assert "Not Enough Stars" in sent["embed"].description
        assert "only have 0" in sent["embed"].description
        assert bot.errors_caught == 1

    async def test_followup_used_after_defer(self, db):
        from bot import KingsBot

        bot = KingsBot(db=db)
        interaction = _interaction(done=True)

        await bot.on_app_command_error(interaction, _invoke_error(MessagingFailure("gone")))

        assert interaction.response.sent == []
        assert "gone" in interaction.followup.sent[0]["embed"].description

    async def test_unexpected_errors_are_hidden(self, db):
        from bot import KingsBot

        bot = KingsBot(db=db)
        interaction = _interaction()

        await bot.on_app_command_error(interaction, _invoke_error(RuntimeError("secret detail")))

        embed = interaction.response.sent[0]["embed"]
        assert "secret detail" not in embed.description
        assert embed.footer.text == "Error: RuntimeError"


def test_error_embed_uses_class_title():
    from utils.embeds import ModEmbed

    embed = ModEmbed.from_error(NotFound("No FAQ entry called `x`."))
    assert "Not Found" in embed.description
    assert "No FAQ entry called `x`." in embed.description


def test_reopened_channel_name():
    from cogs.support import reopened_channel_name

    assert reopened_channel_name("[Fixed] - 12 - bob - crash") == "12 - bob - crash"
    assert reopened_channel_name("[Closed] - 3 - amy - lag") == "3 - amy - lag"
    assert reopened_channel_name("4 - amy - lag") == "4 - amy - lag"


def test_summarize_dispatch():
    from cogs.support import summarize_dispatch

    empty = DispatchReport(ticket_id=1, title="t")
    assert "no support channels" in summarize_dispatch(empty).description

    full = DispatchReport(ticket_id=2, title="t", threads=[(10, object()), (20, object())])
    assert "created in 2 support channel(s)" in summarize_dispatch(full).description

    partial = DispatchReport(
        ticket_id=3,
        title="t",
        threads=[(20, object())],
        failures=[(10, MessagingFailure("down"))],
    )
    assert "opened in 1 of 2" in summarize_dispatch(partial).description

    incomplete = DispatchReport(
        ticket_id=4,
        title="t",
        threads=[(10, object()), (20, object())],
        post_failures=[(10, MessagingFailure("no send"))],
    )
    embed = summarize_dispatch(incomplete)
    assert "Ticket Incomplete" in embed.description
    assert "could not be posted in 1 of them" in embed.description


def test_rule_embed():
    from cogs.rules import rule_embed

    embed = rule_embed("3", "No spoilers.")
    assert isinstance(embed, discord.Embed)
    assert embed.title == "Rule: 3"
    assert embed.description.startswith("**3.** No spoilers.")


async def test_bot_requests_no_privileged_intents(db):
    from bot import KingsBot

    intents = KingsBot(db=db).intents
    assert not intents.members
    assert not intents.presences
    assert not intents.message_content


def test_in_support_channel(monkeypatch):
    from cogs import support
    from config import Config

    monkeypatch.setattr(Config, "SUPPORT_CHANNEL_ID", 555)
    assert support.in_support_channel(SimpleNamespace(parent_id=555))
    assert not support.in_support_channel(SimpleNamespace(parent_id=556))
    # a plain text channel has a category, not a parent channel
    assert not support.in_support_channel(SimpleNamespace(category_id=555))

    monkeypatch.setattr(Config, "SUPPORT_CHANNEL_ID", 0)
    assert not support.in_support_channel(SimpleNamespace(parent_id=0))


def test_owner_ids_skip_non_decimal_entries():
    from config import _parse_id_set

    assert _parse_id_set("1, 2 3") == {1, 2, 3}
    assert _parse_id_set("4,²,abc") == {4}
    assert _parse_id_set(None) == frozenset()
