from colorama import Fore, Style, init
from datetime import datetime
import json

from audit.tcc_records import is_high_impact

init(autoreset=True)

# Cyberpunk theme colors
CYBER_PURPLE = '\033[95m'  # Bright magenta
CYBER_NEON_GREEN = '\033[92m'  # Bright green
CYBER_NEON_YELLOW = '\033[93m'  # Bright yellow
CYBER_NEON_CYAN = '\033[96m'  # Bright cyan
CYBER_DIVIDER = CYBER_PURPLE + ("─" * 50) + Style.RESET_ALL

# Fixed-width layout of the TCC table; header and rows share it
ROW_FORMAT = "{:<30} {:<40} {:<10} {:<10} {:<20} {:<30}"
HEADER_COLUMNS = ("SERVICE", "CLIENT", "AUTH", "PROMPTS", "LAST_MODIFIED", "SANDBOX_ID")
HIGHLIGHT_MARK = "* "
PLAIN_MARK = "  "


def color_text(text, color):
    return f"{color}{text}{Style.RESET_ALL}"

def print_category(title):
    print(CYBER_DIVIDER)
    print(color_text(f"== {title} ==", CYBER_PURPLE))
    print(CYBER_DIVIDER)

STATUS_COLORS = {
    "OK": CYBER_NEON_GREEN,
    "ALERT": CYBER_NEON_YELLOW,
    "ERROR": Fore.RED,
}

def print_result(label, status, info):
    print(color_text(f"{label}: {status}", STATUS_COLORS[status]))
    for item in info:
        print(f"    {CYBER_PURPLE}•{Style.RESET_ALL} {CYBER_NEON_CYAN}{item}{Style.RESET_ALL}")

def print_tip(tip):
    print(color_text(f"  {tip}", CYBER_NEON_CYAN))


def sort_records(records):
    """Sort by service only; sorted() is stable so equal services keep input order."""
    return sorted(records, key=lambda record: record.service)

def format_record(record):
    line = ROW_FORMAT.format(
        record.service,
        record.client,
        record.auth_state.label,
        record.prompt_count,
        record.last_modified_string,
        record.sandbox_id,
    )
    mark = HIGHLIGHT_MARK if is_high_impact(record) else PLAIN_MARK
    return mark + line

def render_tcc_report(records):
    """Render records as a fixed-width table: header, rule, one marked line per record."""
    header = ROW_FORMAT.format(*HEADER_COLUMNS)
    lines = [header, "-" * len(header)]
    lines.extend(format_record(record) for record in sort_records(records))
    return lines

def records_to_json(records):
    data = []
    for record in sort_records(records):
        data.append({
            "service": record.service,
            "client": record.client,
            "auth_value": record.auth_state.code,
            "auth_state": record.auth_state.label,
            "prompt_count": record.prompt_count,
            "last_modified": record.last_modified,
            "last_modified_local": record.last_modified_string,
            "sandbox_id": record.sandbox_id,
            "high_impact": is_high_impact(record),
        })
    return json.dumps(data, indent=2)

def print_tcc_report(lines, highlight=False):
    for line in lines:
        if highlight and line.startswith(HIGHLIGHT_MARK):
            print(color_text(line, CYBER_NEON_YELLOW))
        else:
            print(line)

def export_report(report, filename):
    with open(filename, "w") as f:
        if isinstance(report, list):
            for line in report:
                f.write(f"{line}\n")
        else:
            f.write(report)
            if not report.endswith("\n"):
                f.write("\n")

def append_timeline(log_file, message):
    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    with open(log_file, "a") as log:
        log.write(f"[{timestamp}] {message}\n")
