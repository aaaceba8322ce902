import os
import sys
from importlib import metadata
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from audit.tcc import DEFAULT_TCC_DB, SYSTEM_TCC_DB, check_tcc_permissions, parse_tcc_database
from audit.tcc_records import is_high_impact
from utils.output import (
    append_timeline, export_report, print_category, print_result, print_tcc_report, print_tip,
    records_to_json, render_tcc_report
)


def read_version():
    """Installed package metadata first, then the VERSION file of a source checkout."""
    try:
        return metadata.version("tccwatchdog")
    except metadata.PackageNotFoundError:
        pass
    version_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "VERSION")
    try:
        with open(version_path) as vf:
            return vf.read().strip()
    except OSError:
        return "unknown"

VERSION = read_version()

TCC_DB_PATH_ENV = "TCC_DB_PATH"
NO_RECORDS_NOTICE = "[*] No records found in TCC database."
NO_HIGH_IMPACT_NOTICE = "[*] No high-impact records found in TCC database."

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="tccWatchdog - a macOS TCC database parser for pentesters and forensic triage.",
)
console = Console()
err_console = Console(stderr=True)


def print_error(message):
    err_console.print(escape(f"[-] ERROR: {message}"), style="red", soft_wrap=True)

def resolve_db_path(path, system):
    """Pick the store to read: explicit path, system-wide store, or the user's own."""
    if path and system:
        print_error("--path and --system cannot be used together")
        raise typer.Exit(code=1)
    if system:
        if os.geteuid() != 0:
            err_console.print("[yellow]Warning: The system-wide TCC database usually requires root (sudo) or Full Disk Access.[/yellow]")
        return SYSTEM_TCC_DB
    return str(path) if path else DEFAULT_TCC_DB

def check_db_path(db_path):
    if not os.path.exists(db_path):
        print_error(f"No TCC database found at path: {db_path}")
        raise typer.Exit(code=1)
    if not os.access(db_path, os.R_OK):
        print_error(f"TCC database is not readable: {db_path}")
        raise typer.Exit(code=1)

def write_timeline(log_file, message):
    try:
        append_timeline(log_file, message)
    except OSError as e:
        print_error(f"Could not write timeline log {log_file}: {e}")
        raise typer.Exit(code=1)

def run_report(path=None, system=False, as_json=False, high_impact=False, output=None, log_file=None):
    db_path = resolve_db_path(path, system)
    check_db_path(db_path)

    records, error = parse_tcc_database(db_path)
    if error:
        print_error(error)
        if log_file:
            write_timeline(log_file, f"Failed to read TCC database {db_path}: {error}")
        raise typer.Exit(code=1)
    if log_file:
        write_timeline(log_file, f"Parsed {len(records)} TCC records from {db_path}")

    if high_impact and records:
        records = [record for record in records if is_high_impact(record)]
        if not records and not as_json:
            print(NO_HIGH_IMPACT_NOTICE)
            return
    elif not records and not as_json:
        print(NO_RECORDS_NOTICE)
        return

    # JSON always yields a document, "[]" when there is nothing to show
    report = records_to_json(records) if as_json else render_tcc_report(records)
    if output:
        try:
            export_report(report, output)
        except OSError as e:
            print_error(f"Could not write report to {output}: {e}")
            raise typer.Exit(code=1)
        console.print(f"[green]Report exported to {escape(str(output))}[/green]")
    elif as_json:
        print(report)
    else:
        print(f"[+] TCC records found: {len(records)}")
        print_tcc_report(report, highlight=sys.stdout.isatty())

@app.command()
def report(
    path: Optional[Path] = typer.Option(None, "--path", "-p", envvar=TCC_DB_PATH_ENV, help="Path to the TCC.db file. Defaults to ~/Library/Application Support/com.apple.TCC/TCC.db"),
    system: bool = typer.Option(False, "--system", help="Read the system-wide TCC database (requires root or Full Disk Access)"),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON instead of a table"),
    high_impact: bool = typer.Option(False, "--high-impact", help="Only show high-impact services"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to a file instead of stdout"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Append a timeline entry for this run to a log file"),
):
    """Enumerate app permissions from a TCC database, highlighting high-impact services."""
    run_report(path, system, as_json, high_impact, output, log_file)

@app.command()
def summary(
    path: Optional[Path] = typer.Option(None, "--path", "-p", envvar=TCC_DB_PATH_ENV, help="Path to the TCC.db file"),
    system: bool = typer.Option(False, "--system", help="Read the system-wide TCC database"),
):
    """Show which apps are allowed high-impact TCC services."""
    result = check_tcc_permissions(resolve_db_path(path, system))
    print_category("TCC Privacy")
    print_result(result["label"], result["status"], result["info"])
    if result.get("tip"):
        print_tip(result["tip"])
    if result["status"] == "ERROR":
        raise typer.Exit(code=1)

@app.command()
def version():
    """Show the current version of tccWatchdog."""
    console.print(f"tccWatchdog version: [bold green]{VERSION}[/bold green]")

@app.callback()
def main(ctx: typer.Context):
    if ctx.invoked_subcommand is None:
        run_report(path=os.environ.get(TCC_DB_PATH_ENV))

if __name__ == "__main__":
    app()
