from loguru import logger
from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from textledger.config import get_settings
from textledger.core.service import InvalidLedgerEntry
from textledger.deps import service
from textledger.models.schemas import (
    IngestResult,
    LedgerEntry,
    ReceivableBalance,
    ReimbursementBalance,
    Summary,
)

settings = get_settings()


def _format_money(amount: float, currency: str) -> str:
    """Format an amount with thousands separators: 'USD 1,250' or 'USD 12.50'."""
    if amount == int(amount):
        return f"{currency} {int(amount):,}"
    return f"{currency} {amount:,.2f}"


def _balance_text(balance: ReimbursementBalance, currency: str, party: str | None = None) -> str:
    who = f"*{party}*" if party else "Everyone"
    lines = [
        f"{who} owes you: {_format_money(balance.they_owe_me, currency)}",
        f"You owe {party or 'others'}: {_format_money(balance.i_owe_them, currency)}",
    ]
    if balance.net > 0:
        lines.append(f"*Net: you are owed {_format_money(balance.net, currency)}*")
    elif balance.net < 0:
        lines.append(f"*Net: you owe {_format_money(-balance.net, currency)}*")
    else:
        lines.append("*All square.*")
    return "\n".join(lines)


def _receivables_text(balances: list[ReceivableBalance], currency: str) -> str:
    if not balances:
        return "No loans on record."
    lines = ["*Loans:*"]
    for b in balances:
        if b.they_owe:
            lines.append(f"• *{b.counterparty}* owes you {_format_money(b.they_owe, currency)}")
        elif b.i_owe:
            lines.append(f"• You owe *{b.counterparty}* {_format_money(b.i_owe, currency)}")
        else:
            lines.append(f"• *{b.counterparty}* settled")
    return "\n".join(lines)


def _summary_text(summary: Summary) -> str:
    c = summary.currency
    return "\n".join(
        [
            "*Spending:*",
            f"This week: {_format_money(summary.week.total, c)}",
            f"This month: {_format_money(summary.month.total, c)}",
            f"Year to date: {_format_money(summary.ytd.total, c)}",
            f"All time: {_format_money(summary.all_time.total, c)}\n",
            "*Ledger:*",
            f"Income: {_format_money(summary.ledger.income_total, c)}",
            f"Savings: {_format_money(summary.ledger.savings_total, c)}",
            f"Investments: {_format_money(summary.ledger.investment_total, c)}",
            f"Liabilities: {_format_money(summary.ledger.liability_total, c)}",
            f"*Net worth: {_format_money(summary.net_worth, c)}*",
        ]
    )


def _reply_for(outcome: IngestResult | LedgerEntry | None) -> str:
    if outcome is None:
        return "Could not parse amount from message"
    if isinstance(outcome, LedgerEntry):
        line = (
            f"Recorded {outcome.type} of {_format_money(outcome.amount, outcome.currency)} "
            f"on {outcome.occurred_on.isoformat()}."
        )
        if outcome.counterparty:
            line += f" ({outcome.direction} {outcome.counterparty})"
        return line

    lines = [outcome.ack]
    for r in outcome.reimbursements:
        amount = _format_money(r.amount, r.currency)
        if r.direction == "they_owe_me":
            lines.append(f"{r.other_party} owes you {amount}")
        else:
            lines.append(f"You owe {r.other_party} {amount}")
    return "\n".join(lines)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hey! Text me what you spent and I'll keep the books.\n\n"
        "Examples:\n"
        '• "food 499 swiggy"\n'
        '• "room 300 paidby:roommate other:vyas split:equal"\n'
        '• "dinner 90 split:2/1 other:kevin"\n'
        '• "salary 5000 type:income account:checking"\n'
        '• "took 1200 type:receivable counterparty:kevin direction:i_borrowed"\n\n'
        "Commands:\n"
        "/balance [name] - Who owes whom from shared expenses\n"
        "/receivables - Loan balances\n"
        "/summary - Spending and ledger totals\n"
        "/help - Show this message"
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await start_command(update, context)


async def balance_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /balance [name] command."""
    party = " ".join(context.args) if context.args else None
    balance = service.reimbursement_balance(other_party=party)
    await update.message.reply_text(
        _balance_text(balance, service.default_currency, party), parse_mode="Markdown"
    )


async def receivables_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /receivables command."""
    await update.message.reply_text(
        _receivables_text(service.receivable_balances(), service.default_currency),
        parse_mode="Markdown",
    )


async def summary_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /summary command."""
    await update.message.reply_text(_summary_text(service.summary()), parse_mode="Markdown")


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Record an incoming text message as an expense or ledger entry."""
    user_text = update.message.text.strip()
    logger.info("Telegram message: {}", user_text)

    from_user = str(update.effective_user.id) if update.effective_user else None
    try:
        outcome = service.handle_message(user_text, source="telegram", from_user=from_user)
    except InvalidLedgerEntry as e:
        await update.message.reply_text(str(e))
        return
    except Exception as e:
        logger.error("Error recording message: {}", e)
        await update.message.reply_text(f"Something went wrong: {e}")
        return

    await update.message.reply_text(_reply_for(outcome))


def build_bot_app() -> Application:
    """Build and return the Telegram bot application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("balance", balance_command))
    app.add_handler(CommandHandler("receivables", receivables_command))
    app.add_handler(CommandHandler("summary", summary_command))

    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    return app
