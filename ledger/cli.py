# Overview: Flask CLI command groups for logging in, recording sales, collecting debts and exporting reports.

# ledger/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv and `pip install -e .`.
# - Set FLASK_APP=ledger and LEDGER_API_URL to the backend base URL.
# - Use: flask <group> <command> [options]
#
# Session (tokens are kept in LEDGER_TOKEN_FILE between invocations):
# - flask auth login --username admin
#   Prompts for the 6-digit passcode.
# - flask auth logout
# - flask auth whoami
#
# Sales:
# - flask sales today
#   Today's entries with revenue and containers.
# - flask sales add --customer-id c1 --quantity 3 --payment-type CREDIT
#   Quick-add a sale; credit sales are checked against the customer's limit first.
#
# Debts:
# - flask debts outstanding
#   Customers with a balance, largest first.
# - flask debts pay PAYMENT_ID --amount 50
#   Record a partial or full payment.
#
# Reports:
# - flask reports daily [--date 2024-01-15] [--output report.csv]
# - flask reports aging [--output aging.csv]
#
# Credit:
# - flask credit check --balance 800 --amount 150 --limit 1000
#   Offline credit-limit arithmetic, no backend call.

from __future__ import annotations

from pathlib import Path

import click
from flask import current_app
from flask.cli import with_appcontext

from .api import FileTokenStore, LedgerApi
from .api.client import ApiError, SessionExpiredError
from .constants import PAYMENT_METHOD_CASH, VALID_PAYMENT_TYPES
from .extensions import backend
from .formatting import format_currency, format_kpi_value, format_location, format_percentage, truncate
from .services import payment_service, sales_service
from .services.analytics_service import summarize_today
from .services.credit_service import balance_preview, build_aging_summary, check_credit
from .services.payment_service import PaymentError
from .services.report_service import (
    aging_csv_filename,
    aging_report_csv,
    daily_csv_filename,
    daily_report_csv,
    payments_to_rows,
)
from .services.session_service import AuthSession
from .time_utils import date_key, format_date, parse_iso_date, today_iso, yesterday_iso
from .validation import ValidationError


def _api() -> LedgerApi:
    return backend.api_for(FileTokenStore(current_app.config["LEDGER_TOKEN_FILE"]))


def _fail(message: str) -> None:
    click.echo(f"FAIL {message}")
    raise click.exceptions.Exit(1)


def _require_login(api: LedgerApi) -> None:
    if not api.auth.is_authenticated():
        _fail("Not logged in. Run: flask auth login")


def _write_csv(body: str, output: str | None, default_name: str) -> None:
    path = Path(output or default_name)
    path.write_text(body, encoding="utf-8")
    click.echo(f"PASS Wrote {path}")


# =============================================================================
# auth
# =============================================================================

@click.group('auth')
def auth_group():
    """Log in and out of the ledger backend."""


@auth_group.command('login')
@click.option('--username', prompt=True, help='Username')
@click.option('--passcode', prompt=True, hide_input=True, help='6-digit passcode')
@with_appcontext
def login(username, passcode):
    """Authenticate and store the token pair."""
    api = _api()
    try:
        user = AuthSession(api.auth).login(username, passcode)
    except ValidationError as e:
        _fail(e.message)
    except ApiError as e:
        _fail(f"Login failed: {e.message}")
    finally:
        api.close()
    click.echo(f"PASS Logged in as {user.username} ({user.role})")


@auth_group.command('logout')
@with_appcontext
def logout():
    """Clear stored tokens (the backend logout is best effort)."""
    api = _api()
    try:
        api.auth.logout()
    finally:
        api.close()
    click.echo("PASS Logged out")


@auth_group.command('whoami')
@with_appcontext
def whoami():
    api = _api()
    try:
        _require_login(api)
        user = AuthSession(api.auth).current_user()
    except ApiError as e:
        _fail(e.message)
    finally:
        api.close()
    click.echo(f"{user.username} ({user.role})")


# =============================================================================
# sales
# =============================================================================

@click.group('sales')
def sales_group():
    """Record and inspect water sales."""


@sales_group.command('today')
@with_appcontext
def sales_today():
    """List today's entries and the day's totals."""
    api = _api()
    try:
        _require_login(api)
        settings = backend.current_settings(api)
        today = today_iso()
        sales = api.sales.list(start_date=yesterday_iso(), end_date=today, limit=1000).data
        customers = api.customers.all()
    except ApiError as e:
        _fail(e.message)
    finally:
        api.close()

    lookup = {c.id: c for c in customers}
    entries = [
        sales_service.sale_entry(s, lookup.get(s.customer_id), settings)
        for s in sales
        if date_key(s.date) == today
    ]
    metrics = summarize_today(sales, customers, today, settings)["metrics"]

    if not entries:
        click.echo("No sales recorded today.")
    else:
        click.echo("\n" + "=" * 80)
        click.echo(f"{'Customer':<28} {'Location':<14} {'Qty':>5} {'Type':<8} {'Amount':>14}")
        click.echo("=" * 80)
        for e in entries:
            click.echo(
                f"{truncate(e['customer_name'], 28):<28} {truncate(format_location(e['location']), 14):<14} "
                f"{int(e['quantity']):>5} {e['payment_type']:<8} {format_currency(e['amount']):>14}"
            )
        click.echo("=" * 80)

    click.echo(
        f"Revenue {format_kpi_value(metrics['revenue'], 'revenue')} | "
        f"Containers {format_kpi_value(metrics['quantity'])} | "
        f"Customers {format_kpi_value(metrics['active_customers'])}"
    )


@sales_group.command('add')
@click.option('--customer-id', required=True, help='Customer ID')
@click.option('--quantity', type=int, required=True, help='Containers sold')
@click.option('--payment-type', type=click.Choice(VALID_PAYMENT_TYPES, case_sensitive=False), default='CASH')
@click.option('--notes', default=None)
@with_appcontext
def sales_add(customer_id, quantity, payment_type, notes):
    """Quick-add a sale at the customer's effective price."""
    api = _api()
    try:
        _require_login(api)
        settings = backend.current_settings(api)
        sale, credit = sales_service.quick_add_sale(api, backend.cache, settings, {
            "customer_id": customer_id,
            "quantity": quantity,
            "payment_type": payment_type,
            "notes": notes,
        })
    except ValidationError as e:
        _fail(e.message)
    except ApiError as e:
        _fail(f"Failed to record sale: {e.message}")
    finally:
        api.close()

    if credit is not None and credit.message:
        click.echo(f"WARN {credit.message}")
    click.echo(f"PASS Recorded sale {sale.id or '(id pending)'}: {quantity} x {format_currency(sale.unit_price)} = {format_currency(sale.total)}")


# =============================================================================
# debts
# =============================================================================

@click.group('debts')
def debts_group():
    """Outstanding balances and payment collection."""


@debts_group.command('outstanding')
@with_appcontext
def debts_outstanding():
    api = _api()
    try:
        _require_login(api)
        balances = api.payments.outstanding_balances()
    except ApiError as e:
        _fail(e.message)
    finally:
        api.close()

    balances = sorted((b for b in balances if b.total_owed > 0), key=lambda b: b.total_owed, reverse=True)
    if not balances:
        click.echo("No outstanding balances.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'Customer':<28} {'Location':<14} {'Owed':>14} {'Days':>6} {'Status':<10}")
    click.echo("=" * 80)
    for b in balances:
        click.echo(
            f"{truncate(b.customer_name, 28):<28} {truncate(format_location(b.location), 14):<14} "
            f"{format_currency(b.total_owed):>14} {b.days_past_due:>6} {b.collection_status:<10}"
        )
    click.echo("=" * 80)
    click.echo(f"Total {format_currency(sum(b.total_owed for b in balances))} across {len(balances)} customers\n")


@debts_group.command('pay')
@click.argument('payment_id')
@click.option('--amount', type=float, required=True, help='Amount received')
@click.option('--notes', default=None)
@with_appcontext
def debts_pay(payment_id, amount, notes):
    """Record a partial or full payment against a credit sale."""
    api = _api()
    try:
        _require_login(api)
        payment, updated = payment_service.record_payment(
            api, backend.cache, payment_id, amount, PAYMENT_METHOD_CASH, notes
        )
    except PaymentError as e:
        _fail(str(e))
    except ValidationError as e:
        _fail(e.message)
    except ApiError as e:
        _fail(f"Failed to record payment: {e.message}")
    finally:
        api.close()

    preview = balance_preview(payment.remaining, updated.remaining)
    click.echo(
        f"PASS Recorded {format_currency(amount)}; remaining "
        f"{format_currency(preview['current'])} -> {format_currency(preview['after'])} ({updated.status})"
    )


# =============================================================================
# reports
# =============================================================================

@click.group('reports')
def reports_group():
    """Daily collections and aging reports."""


@reports_group.command('daily')
@click.option('--date', 'day', default=None, help='YYYY-MM-DD (default today)')
@click.option('--output', default=None, help='Write CSV to this path')
@with_appcontext
def reports_daily(day, output):
    try:
        parsed = parse_iso_date(day or today_iso())
    except ValueError:
        parsed = None
    if parsed is None:
        _fail("--date must be a YYYY-MM-DD date")
    day = parsed.isoformat()

    api = _api()
    try:
        _require_login(api)
        report = api.payments.daily_payments_report(day)
    except ApiError as e:
        _fail(e.message)
    finally:
        api.close()

    if output is not None:
        _write_csv(daily_report_csv(report), output, daily_csv_filename(day))
        return

    click.echo(f"\nCollections for {format_date(day)}: {format_currency(report.total_amount)} from {report.total_payments} payments")
    for row in payments_to_rows(report.payments):
        click.echo(f"  {row['date']:<14} {truncate(row['customer'], 28):<28} {row['amount']:>12} {row['status']}")


@reports_group.command('aging')
@click.option('--output', default=None, help='Write CSV to this path')
@with_appcontext
def reports_aging(output):
    api = _api()
    try:
        _require_login(api)
        try:
            report = api.payments.aging_report()
        except SessionExpiredError:
            raise
        except ApiError as e:
            click.echo(f"WARN Aging report unavailable ({e.message}); building from balances")
            report = build_aging_summary(api.payments.outstanding_balances())
    except ApiError as e:
        _fail(e.message)
    finally:
        api.close()

    if output is not None:
        _write_csv(aging_report_csv(report), output, aging_csv_filename(report.generated_at, today_iso()))
        return

    click.echo(f"\nOutstanding {format_currency(report.total_outstanding)} across {report.total_customers} customers")
    click.echo(f"  0-30 days   {format_currency(report.current):>14}")
    click.echo(f"  31-60 days  {format_currency(report.days_31_to_60):>14}")
    click.echo(f"  61-90 days  {format_currency(report.days_61_to_90):>14}")
    click.echo(f"  90+ days    {format_currency(report.over_90_days):>14}")


# =============================================================================
# credit
# =============================================================================

@click.group('credit')
def credit_group():
    """Credit-limit arithmetic."""


@credit_group.command('check')
@click.option('--balance', type=float, required=True, help='Current outstanding balance')
@click.option('--amount', type=float, required=True, help='New sale amount')
@click.option('--limit', 'credit_limit', type=float, required=True, help='Credit limit')
def credit_check(balance, amount, credit_limit):
    result = check_credit(balance, amount, credit_limit)
    click.echo(
        f"{result.status.upper()} {format_currency(result.current_balance)} + {format_currency(result.sale_amount)} "
        f"= {format_currency(result.new_balance)} ({format_percentage(result.utilization)} of {format_currency(result.credit_limit)})"
    )
    if result.message:
        click.echo(result.message)
    if not result.allowed:
        raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(auth_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(debts_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(credit_group)
