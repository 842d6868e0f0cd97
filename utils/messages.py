"""
Centralized Response Templates
Provides consistent messaging across the bot
"""


class Messages:
    """Standard error and response messages"""

    # Permission Errors
    MISSING_PERMISSIONS = "❌ You don't have permission to use this command."
    BOT_MISSING_PERMISSIONS = "❌ I need the following permissions: {perms}"

    # System Errors
    UNEXPECTED_ERROR = "An unexpected error occurred while executing this command.\nThe error has been logged."
    RATE_LIMITED = "⏰ Please wait {seconds:.1f}s before using this command again."

    # Tickets
    TICKET_CREATED = "🎫 Ticket **#{ticket_id}** created in {count} support channel(s)."
    TICKET_PARTIAL = "Ticket **#{ticket_id}** was opened in {opened} of {total} support channel(s). Staff have been notified of the rest."
    TICKET_NO_CHANNELS = "Ticket **#{ticket_id}** was recorded, but this server has no support channels configured."
    TICKET_INCOMPLETE = "Ticket **#{ticket_id}** has {opened} thread(s), but the ticket details could not be posted in {incomplete} of them. Staff have been notified."
    TICKET_REOPENED = "🔓 Ticket reopened"
    TICKET_REOPEN_WRONG_CHANNEL = "This command can only be used in support channels"

    # Gold stars
    STAR_GIVEN_FREE = "⭐ {giver} gave {recipient} a gold star! (free star used)"
    STAR_GIVEN_PAID = "⭐ {giver} gave {recipient} a gold star! ({balance} left)"
    STAR_NEXT_FREE = "Next free star <t:{timestamp}:R>."

    # Rules & FAQ
    RULE_FOOTER = "**Please read the rest of the rules in {channel}!**"
    FAQ_SAVED = "FAQ entry `{faq_id}` saved."
    FAQ_DELETED = "FAQ entry `{faq_id}` removed."

    # Infractions
    INFRACTION_LOGGED = "Infraction #{infraction_id} logged for {user} ({points} point(s))."

    @staticmethod
    def format(template: str, **kwargs) -> str:
        """Format a message template with kwargs"""
        return template.format(**kwargs)
