# finance_tracker/cli.py
import functools
import logging
import os
from datetime import date
from pathlib import Path

import click
from dotenv import load_dotenv

from finance_tracker import database, ledger
from finance_tracker.auth import AuthenticationError, authenticate, register_user
from finance_tracker.config import load_config, save_config
from finance_tracker.core.models import EXPENSE, INCOME, TRANSACTION_TYPES
from finance_tracker.core.months import MonthKey, current_month
from finance_tracker.loaders import loader_for_file
from finance_tracker.manual import import_snapshot, import_transactions, load_snapshot
from finance_tracker.outputs import get_output

logger = logging.getLogger(__name__)

TIER_MARKS = {"under": "✓", "warning": "⚡", "over": "⚠️"}


def _guard(func):
    """Report validation, lookup and credential errors as clean CLI errors."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ValueError, LookupError, AuthenticationError) as exc:
            raise click.ClickException(str(exc)) from exc
    return wrapper


def _fmt(amount):
    return f"{amount:,.2f}"


def _month_option(value):
    try:
        return MonthKey.parse(value) if value else current_month()
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _session(ctx):
    obj = ctx.obj
    if obj.get("session") is None:
        email = obj.get("email") or os.environ.get("SPENDWISE_EMAIL") or click.prompt("Email")
        password = (
            obj.get("password")
            or os.environ.get("SPENDWISE_PASSWORD")
            or click.prompt("Password", hide_input=True)
        )
        obj["session"] = authenticate(obj["db_path"], email, password)
    return obj["session"]


def _category_ref(db_path, session, value, kind=None):
    """Resolve a category name, or failing that a numeric id, to an id."""
    if value is None or value == "":
        return None
    cat = database.find_category(db_path, session, value, kind)
    if cat is not None:
        return cat.id
    if str(value).isdigit():
        return str(value)
    raise click.ClickException(f"Unknown category '{value}'")


@click.group()
@click.option(
    '--config', 'config_path',
    default='config.yaml',
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults are used when it does not exist)'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides config)'
)
@click.option('--email', default=None, help='Account email (or SPENDWISE_EMAIL)')
@click.option('--password', default=None, help='Account password (or SPENDWISE_PASSWORD)')
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with SPENDWISE_* variables'
)
@click.pass_context
def main(ctx, config_path, db_path, email, password, env_file):
    """Track income, expenses and monthly budgets."""
    if env_file:
        load_dotenv(env_file)

    cfg = load_config(config_path)
    logging.basicConfig(level=os.getenv("SPENDWISE_LOG_LEVEL", str(cfg["log_level"])).upper())
    ctx.obj = {
        "config": cfg,
        "config_path": config_path,
        "db_path": db_path or os.environ.get("SPENDWISE_DB") or cfg["db_path"],
        "email": email,
        "password": password,
        "session": None,
    }


@main.command()
@click.pass_context
def init(ctx):
    """Write a default config.yaml (if missing) and create the database."""
    path = Path(ctx.obj["config_path"])
    if not path.exists():
        save_config(ctx.obj["config"], path)
        click.echo(f"Wrote default config to {path}")
    database.init_db(ctx.obj["db_path"])
    click.echo(f"Database ready at {ctx.obj['db_path']}")


@main.command()
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
@_guard
def register(ctx, email, password):
    """Create an account."""
    session = register_user(ctx.obj["db_path"], email, password)
    click.echo(f"Registered {session.email}.")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@main.group()
def category():
    """Manage categories."""


@category.command('add')
@click.argument('name')
@click.option('--type', 'kind', default=EXPENSE, type=click.Choice(TRANSACTION_TYPES))
@click.option('--icon', default='')
@click.option('--color', default='')
@click.pass_context
@_guard
def category_add(ctx, name, kind, icon, color):
    cat = database.add_category(ctx.obj["db_path"], _session(ctx), name, kind, icon, color)
    click.echo(f"Added {cat.type} category {cat.name} (id {cat.id}).")


@category.command('list')
@click.option('--type', 'kind', default=None, type=click.Choice(TRANSACTION_TYPES))
@click.pass_context
@_guard
def category_list(ctx, kind):
    cats = database.list_categories(ctx.obj["db_path"], _session(ctx), kind)
    if not cats:
        click.echo("No categories yet.")
        return
    for cat in cats:
        click.echo(f"{cat.id:>4}  {cat.icon or ' '} {cat.name:<24} {cat.type}")


@category.command('edit')
@click.argument('category_id')
@click.option('--name', default=None)
@click.option('--type', 'kind', default=None, type=click.Choice(TRANSACTION_TYPES))
@click.option('--icon', default=None)
@click.option('--color', default=None)
@click.pass_context
@_guard
def category_edit(ctx, category_id, name, kind, icon, color):
    cat = database.update_category(
        ctx.obj["db_path"], _session(ctx), category_id, name=name, type=kind, icon=icon, color=color
    )
    click.echo(f"Updated category {cat.name} (id {cat.id}).")


@category.command('delete')
@click.argument('category_id')
@click.confirmation_option(prompt='Delete this category? Related transactions lose their category.')
@click.pass_context
@_guard
def category_delete(ctx, category_id):
    database.delete_category(ctx.obj["db_path"], _session(ctx), category_id)
    click.echo(f"Deleted category {category_id}.")


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@main.group()
def tx():
    """Record and list transactions."""


@tx.command('add')
@click.argument('amount', type=float)
@click.option('--type', 'kind', default=EXPENSE, type=click.Choice(TRANSACTION_TYPES))
@click.option('--date', 'day', default=None, help='YYYY-MM-DD (default: today)')
@click.option('--category', default=None, help='Category name or id')
@click.option('--note', default='')
@click.pass_context
@_guard
def tx_add(ctx, amount, kind, day, category, note):
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    cat_id = _category_ref(db_path, session, category, kind)
    record = database.add_transaction(
        db_path, session, amount, kind, day or date.today().isoformat(), cat_id, note
    )
    click.echo(f"Added {record.type} of {_fmt(record.amount)} on {record.date} (id {record.id}).")


@tx.command('edit')
@click.argument('transaction_id')
@click.option('--amount', type=float, default=None)
@click.option('--type', 'kind', default=None, type=click.Choice(TRANSACTION_TYPES))
@click.option('--date', 'day', default=None)
@click.option('--category', default=None, help='Category name or id; empty string clears it')
@click.option('--note', default=None)
@click.pass_context
@_guard
def tx_edit(ctx, transaction_id, amount, kind, day, category, note):
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    kwargs = {}
    if category is not None:
        kwargs["category_id"] = _category_ref(db_path, session, category, kind)
    record = database.update_transaction(
        db_path, session, transaction_id, amount=amount, type=kind, date=day, note=note, **kwargs
    )
    click.echo(f"Updated transaction {record.id}.")


@tx.command('list')
@click.option('--type', 'kind', default='all', type=click.Choice(('all',) + TRANSACTION_TYPES))
@click.pass_context
@_guard
def tx_list(ctx, kind):
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    view = ledger.transactions_view(db_path, session, kind)
    names = {c.id: c.name for c in database.list_categories(db_path, session)}
    for record in view.transactions:
        sign = '+' if record.type == INCOME else '-'
        label = record.note or names.get(record.category_id, '')
        click.echo(f"{record.id:>4}  {record.date}  {sign}{_fmt(record.amount):>14}  {label}")
    click.echo(f"Income: {_fmt(view.total_income)}  Expense: {_fmt(view.total_expense)}")


@tx.command('delete')
@click.argument('transaction_id')
@click.pass_context
@_guard
def tx_delete(ctx, transaction_id):
    database.delete_transaction(ctx.obj["db_path"], _session(ctx), transaction_id)
    click.echo(f"Deleted transaction {transaction_id}.")


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

@main.group()
def budget():
    """Set budgets and check spend against them."""


@budget.command('set')
@click.argument('category')
@click.argument('amount', type=float)
@click.option('--month', default=None, help='YYYY-MM (default: current month)')
@click.pass_context
@_guard
def budget_set(ctx, category, amount, month):
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    cat_id = _category_ref(db_path, session, category, EXPENSE)
    record = database.add_budget(db_path, session, cat_id, amount, _month_option(month))
    click.echo(f"Budget of {_fmt(record.amount)} set for {record.month} (id {record.id}).")


@budget.command('edit')
@click.argument('budget_id')
@click.option('--category', default=None)
@click.option('--amount', type=float, default=None)
@click.option('--month', default=None)
@click.pass_context
@_guard
def budget_edit(ctx, budget_id, category, amount, month):
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    cat_id = _category_ref(db_path, session, category, EXPENSE)
    record = database.update_budget(
        db_path, session, budget_id, category_id=cat_id, amount=amount,
        month=_month_option(month) if month else None,
    )
    click.echo(f"Updated budget {record.id}.")


@budget.command('list')
@click.option('--month', default=None)
@click.pass_context
@_guard
def budget_list(ctx, month):
    budgets = database.fetch_budgets(
        ctx.obj["db_path"], _session(ctx), _month_option(month) if month else None
    )
    for record in budgets:
        click.echo(f"{record.id:>4}  {record.month}  category {record.category_id:<6} {_fmt(record.amount)}")


@budget.command('delete')
@click.argument('budget_id')
@click.pass_context
@_guard
def budget_delete(ctx, budget_id):
    database.delete_budget(ctx.obj["db_path"], _session(ctx), budget_id)
    click.echo(f"Deleted budget {budget_id}.")


@budget.command('status')
@click.option('--month', default=None)
@click.pass_context
@_guard
def budget_status(ctx, month):
    """Show spend against each budget for a month."""
    summary = ledger.budget_view(ctx.obj["db_path"], _session(ctx), _month_option(month))
    click.echo(summary.month.label)
    if not summary.statuses:
        click.echo("No budgets for this month.")
        return
    for status in summary.statuses:
        name = status.category.name if status.category else f"category {status.category_id}"
        click.echo(
            f"{TIER_MARKS[status.tier]} {name:<20} {_fmt(status.spent_amount):>14} / "
            f"{_fmt(status.budget_amount):<14} {status.utilization_pct:5.1f}%  "
            f"remaining {_fmt(status.remaining_amount)}"
        )
    click.echo(
        f"Total: {_fmt(summary.total_spent)} / {_fmt(summary.total_budget)} "
        f"({summary.overall_utilization_pct:.1f}%)"
    )
    if summary.over_budget:
        click.echo("Over budget this month!")


@main.command()
@click.pass_context
@_guard
def dashboard(ctx):
    """Current month totals, six-month trend and recent transactions."""
    view = ledger.dashboard_view(ctx.obj["db_path"], _session(ctx))
    overview = view.overview
    click.echo(f"{overview.month.label}: {overview.transactions} transaction(s)")
    click.echo(
        f"Income {_fmt(overview.income)}  Expense {_fmt(overview.expense)}  "
        f"Balance {_fmt(overview.balance)}"
    )
    click.echo("\nLast 6 months:")
    for bucket in view.trend:
        click.echo(f"  {bucket.label:<9} +{_fmt(bucket.total_income):>14}  -{_fmt(bucket.total_expense):>14}")
    if view.recent:
        click.echo("\nRecent:")
        for record in view.recent:
            sign = '+' if record.type == INCOME else '-'
            click.echo(f"  {record.date}  {sign}{_fmt(record.amount)}  {record.note}")


@main.command('import')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
@_guard
def import_file(ctx, file_path):
    """Import a YAML snapshot or a CSV/XLSX transaction export."""
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    if Path(file_path).suffix.lower() in ('.yaml', '.yml'):
        counts = import_snapshot(db_path, session, load_snapshot(file_path))
        click.echo(
            f"Imported {counts['categories']} categor(ies), {counts['transactions']} "
            f"transaction(s) and {counts['budgets']} budget(s)."
        )
        return
    loader = loader_for_file(file_path, ctx.obj["config"])
    count = import_transactions(db_path, session, loader.load(file_path))
    click.echo(f"Imported {count} transaction(s) from {file_path}.")


@main.command()
@click.option('--month', default=None)
@click.option(
    '--format', 'output_format',
    default='csv',
    type=click.Choice(['csv', 'html', 'excel']),
    help='Report format'
)
@click.pass_context
@_guard
def export(ctx, month, output_format):
    """Write a month's budget report."""
    key = _month_option(month)
    session = _session(ctx)
    db_path = ctx.obj["db_path"]
    summary = ledger.budget_view(db_path, session, key)
    trend = ledger.trend_view(db_path, session, key)
    out_path = get_output(output_format, ctx.obj["config"]).write(summary, trend)
    click.echo(f"Wrote {output_format.upper()} report to {out_path}")


if __name__ == "__main__":
    main()
