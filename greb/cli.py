"""GREB CLI: administrative order (portaria) records."""

import logging
from pathlib import Path

import click

from greb.config import ISSUERS_PATH, LOG_LEVEL, RECORDS_PATH
from greb.errors import GrebError, Outcome
from greb.records.models import Record
from greb.service import GrebService, parse_date

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _service(ctx: click.Context) -> GrebService:
    return ctx.obj["service"]


def _fail(reason: str) -> None:
    click.echo(f"Error: {reason}", err=True)
    raise SystemExit(1)


def _check(outcome: Outcome) -> Outcome:
    """Exit with the outcome's reason if it failed; warn if it wasn't saved."""
    if not outcome.ok:
        _fail(outcome.reason)
    if not outcome.persisted:
        click.echo("Warning: change applied but could not be written to disk.", err=True)
    return outcome


def _format_record(r: Record) -> str:
    return (
        f"{r.issue_date.isoformat()}  {r.issuer_name} no. {r.serial}/{r.year}  "
        f"- {r.subject}"
    )


def _echo_records(records: list[Record]) -> None:
    if not records:
        click.echo("No records found.")
        return
    for r in sorted(records, key=lambda r: (r.issue_date, r.issuer_name, r.serial)):
        click.echo(_format_record(r))
    click.echo(f"\n{len(records):,} record(s).")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.option("--records", "records_path", type=click.Path(path_type=Path),
              default=RECORDS_PATH, show_default=True, help="Record store JSON file.")
@click.option("--issuers", "issuers_path", type=click.Path(path_type=Path),
              default=ISSUERS_PATH, show_default=True, help="Issuer catalog JSON file.")
@click.pass_context
def main(ctx: click.Context, records_path: Path, issuers_path: Path):
    """GREB: register and query administrative orders."""
    service = GrebService.open(records_path, issuers_path)
    ctx.obj = {"service": service}
    ctx.call_on_close(service.close)


@main.command()
@click.argument("issuer_index")
@click.argument("serial")
@click.argument("issue_date")
@click.argument("subject")
@click.pass_context
def add(ctx: click.Context, issuer_index: str, serial: str, issue_date: str, subject: str):
    """Insert a record. ISSUE_DATE is YYYY-MM-DD."""
    service = _service(ctx)
    record = _check(service.build_record(issuer_index, serial, issue_date, subject)).value
    _check(service.insert(record))
    click.echo(f"Saved: {_format_record(record)}")


@main.command()
@click.argument("issuer_index")
@click.argument("serial")
@click.argument("issue_date")
@click.argument("subject")
@click.pass_context
def update(ctx: click.Context, issuer_index: str, serial: str, issue_date: str, subject: str):
    """Change the subject of an existing record.

    Issuer, serial and year identify the record and cannot be changed
    here: delete the record and add it again instead.
    """
    service = _service(ctx)
    record = _check(service.build_record(issuer_index, serial, issue_date, subject)).value
    _check(service.update(record))
    click.echo(f"Updated: {_format_record(record)}")


@main.command()
@click.argument("issuer_index")
@click.argument("serial")
@click.argument("year")
@click.pass_context
def delete(ctx: click.Context, issuer_index: str, serial: str, year: str):
    """Delete the record identified by issuer index, serial and year."""
    service = _service(ctx)
    issuer = _check(service.resolve_issuer_by_index(issuer_index)).value
    removed = _check(service.delete(issuer.name, serial, year)).value
    click.echo(f"Deleted: {_format_record(removed)}")


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def clear(ctx: click.Context, yes: bool):
    """Delete every record."""
    service = _service(ctx)
    if not yes:
        click.confirm(f"Delete all {len(service.find_all()):,} records?", abort=True)
    count = _check(service.delete_all()).value
    click.echo(f"Deleted {count:,} records.")


@main.command(name="list")
@click.pass_context
def list_records(ctx: click.Context):
    """List all records, oldest first."""
    _echo_records(_service(ctx).find_all())


@main.command()
@click.argument("issuer")
@click.argument("serial", type=int)
@click.argument("year", type=int)
@click.pass_context
def show(ctx: click.Context, issuer: str, serial: int, year: int):
    """Show one record by issuer name, serial and year."""
    record = _service(ctx).find_by_key(issuer, serial, year)
    if record is None:
        _fail(f"No record for {issuer} no. {serial}/{year}.")
    click.echo(_format_record(record))


@main.command()
@click.option("--issuer", help="Issuer name (substring unless --strict).")
@click.option("--subject", help="Subject name (substring unless --strict).")
@click.option("--strict", is_flag=True, help="Exact (case-insensitive) match for --issuer/--subject.")
@click.option("--serial", type=int, help="Serial number.")
@click.option("--date", "on_date", help="Exact issue date, YYYY-MM-DD.")
@click.option("--year", type=int, help="Issue year.")
@click.option("--from", "start", help="Period start, YYYY-MM-DD (inclusive).")
@click.option("--to", "end", help="Period end, YYYY-MM-DD (inclusive).")
@click.pass_context
def search(ctx, issuer, subject, strict, serial, on_date, year, start, end):
    """Search records by one criterion."""
    service = _service(ctx)
    chosen = [
        name for name, value in [
            ("--issuer", issuer), ("--subject", subject), ("--serial", serial),
            ("--date", on_date), ("--year", year), ("--from/--to", start or end),
        ]
        if value is not None
    ]
    if len(chosen) != 1:
        _fail("Give exactly one search criterion "
              "(--issuer, --subject, --serial, --date, --year or --from/--to).")

    if issuer is not None:
        records = service.find_by_issuer(issuer, strict)
    elif subject is not None:
        records = service.find_by_subject(subject, strict)
    elif serial is not None:
        records = service.find_by_serial(serial)
    elif on_date is not None:
        try:
            day = parse_date(on_date, "date")
        except GrebError as e:
            _fail(str(e))
        records = service.find_by_date(day)
    elif year is not None:
        records = service.find_by_year(year)
    else:
        records = _check(service.find_by_date_range(start, end)).value

    _echo_records(records)


@main.command()
@click.pass_context
def check(ctx: click.Context):
    """Report how the record file loaded (valid vs. skipped entries)."""
    report = _service(ctx).load_report
    click.echo(f"State: {report.state.value}")
    click.echo(report.summary())
    if report.skipped:
        click.echo("\nSkipped entries:")
        for key, reason in report.skipped:
            click.echo(f"  {key}: {reason}")


# ---------------------------------------------------------------------------
# Issuers
# ---------------------------------------------------------------------------

@main.group()
def issuers():
    """Manage the issuer catalog."""


@issuers.command(name="list")
@click.pass_context
def list_issuers(ctx: click.Context):
    """List issuers in catalog order."""
    for issuer in _service(ctx).list_issuers():
        click.echo(f"{issuer.index:>4}  {issuer.name}")


@issuers.command(name="add")
@click.argument("name")
@click.pass_context
def add_issuer(ctx: click.Context, name: str):
    """Register a new issuer."""
    issuer = _check(_service(ctx).register_issuer(name)).value
    click.echo(f"Issuer '{issuer.name}' added with index {issuer.index}.")


@issuers.command(name="show")
@click.argument("index")
@click.pass_context
def show_issuer(ctx: click.Context, index: str):
    """Show the issuer with INDEX."""
    issuer = _check(_service(ctx).resolve_issuer_by_index(index)).value
    click.echo(f"{issuer.index}  {issuer.name}")


if __name__ == "__main__":
    main()
