"""
ClassLens Command Line Interface (CLI)
======================================

Interactive terminal front-end over a `Session`:

    classlens --zip "payroll_export.zip"
    python -m classlens.cli

The dataset is persisted to the configured data directory, so a later run
without `--zip` picks up where the last one left off.
"""

from __future__ import annotations
import argparse, shlex
from typing import List, Optional, Sequence

from .config import get_config
from .engine import SELECTORS, Session
from .errors import ClassLensError
from .logging import setup_logging
from .metrics import TRAINER_METRICS, format_currency
from .models import Slot, SlotField
from .pivot import PivotConfig
from .query import SortKey
from .store import DatasetStore, JsonFileStore, MemoryStore, PivotConfigStore
from .temporal import parse_date

HELP_TEXT = """
ClassLens commands (grouped)
----------------------------

1) View / Inspect
   help
   stats
   show [n]                          (example: show 20)
   values <dimension> [prefix]       (example: values trainer Sh)
   metrics
   top [checkins|revenue|classes] [bottom]
   trainers [checkins|classes|revenue|average|cancelled] [n]

2) Filtering (all filters combine with AND)
   search <text>                     (example: search barre)   'search' alone clears it
   filter <dimension> "<value>"      (example: filter day Monday)   value 'all' clears it
   dates <from|-> <to|->             (example: dates 2024-01-01 2024-03-31)
   where "<expr>"                    (example: where checkins greater 50 and day equals Monday)
   clear

   dimensions: trainer, class, location, day, period

3) Sorting / Top-k
   sort <field> [asc|desc] [<field> [asc|desc] ...]
                                     (example: sort revenue desc teacher asc)
   topk <k> <field>                  (example: topk 10 checkins)

4) Pivot
   pivot <row> <column> <metric> [asc|desc]
                                     (example: pivot teacher day checkins)
   pivots list | pivots show <i> | pivots delete <i>
   pivots save <row> <column> <metric> ["<name>"]

5) Data
   load "<archive.zip>"
   export csv|json ["<dir>"]
   reset

6) History
   undo
   redo

7) Exit
   quit
"""


def build_session(data_dir: Optional[str], persist: bool, marker: str) -> Session:
    backend = JsonFileStore(data_dir) if persist and data_dir else MemoryStore()
    session = Session(store=DatasetStore(backend), pivots=PivotConfigStore(backend), archive_marker=marker)
    session.store.load()
    return session


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the ClassLens CLI.

    1) Configure logging + storage
    2) Rehydrate the previous dataset, or ingest --zip
    3) Start an interactive REPL
    """
    cfg = get_config()
    ap = argparse.ArgumentParser(prog="classlens")
    ap.add_argument("--zip", help="Path to the payroll export ZIP")
    ap.add_argument("--data-dir", default=cfg.data_dir, help="Directory for persisted state")
    ap.add_argument("--no-persist", action="store_true", help="Keep state in memory only")
    args = ap.parse_args(argv)

    setup_logging(json_output=cfg.log_json, log_level=cfg.log_level)
    session = build_session(args.data_dir, not args.no_persist, cfg.archive_marker)

    if args.zip:
        print("Loading archive...")
        try:
            n = session.load_archive(args.zip)
            print(f"Loaded {n} class slots. Type 'help' for commands.")
        except ClassLensError as e:
            print(f"Error: {e}")
    elif len(session.store):
        print(f"Restored {len(session.store)} class slots from {args.data_dir}. Type 'help' for commands.")
    else:
        print("No data loaded. Use: load \"<archive.zip>\"")

    while True:
        try:
            line = input("classlens> ")
            stripped = line.strip()
            if stripped:
                cmd0 = stripped.split()[0].lower()
                if cmd0 not in ("help", "show", "values", "stats", "metrics", "top", "trainers", "quit", "exit"):
                    session.command_log.append(stripped)
        except EOFError:
            break
        if not stripped:
            continue
        if stripped.lower() in ("quit", "exit"):
            break
        try:
            handle(session, stripped)
        except Exception as e:
            print(f"Error: {e}")


def handle(session: Session, line: str) -> None:
    """Handle one CLI command line."""
    # allow where without needing shell-style quoting
    if line.lower().startswith("where "):
        expr = line[len("where "):].strip()
        if len(expr) >= 2 and expr[0] in ('"', "'") and expr[-1] == expr[0]:
            expr = expr[1:-1]
        session.where(expr)
        print(f"Applied where-filter. Size={len(session.current())}")
        return

    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP_TEXT)
        return

    if cmd == "stats":
        idx = session.indices()
        print(f"Dataset slots: {len(session.dataset)} | Current result size: {len(session.current())}")
        print(f"Trainers: {len(idx.by_trainer)} | Classes: {len(idx.by_class)} | "
              f"Locations: {len(idx.by_location)} | Periods: {len(idx.by_period)}")
        print(f"Active filters: {session.view.filters.active_count() + len(session.view.where)}")
        return

    if cmd == "load":
        if len(parts) < 2:
            print('Usage: load "<archive.zip>"')
            return
        n = session.load_archive(parts[1])
        print(f"Loaded {n} class slots.")
        return

    if cmd == "reset":
        session.reset()
        print("Dataset and filters cleared.")
        return

    if cmd == "undo":
        print("Undone." if session.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if session.redo() else "Nothing to redo.")
        return

    if cmd == "clear":
        session.clear_filters()
        print(f"Filters cleared. Size={len(session.current())}")
        return

    if cmd == "search":
        term = " ".join(parts[1:])
        session.search(term)
        print(f"Search={term!r}. Size={len(session.current())}")
        return

    if cmd == "filter":
        if len(parts) < 3:
            raise ValueError(f"Usage: filter <{'|'.join(SELECTORS)}> \"<value>\"")
        dim, value = parts[1].lower(), " ".join(parts[2:])
        session.select(dim, value)
        print(f"Filtered {dim}={value}. Size={len(session.current())}")
        return

    if cmd == "dates":
        if len(parts) != 3:
            raise ValueError("Usage: dates <from|-> <to|->")
        start = None if parts[1] == "-" else parse_date(parts[1])
        end = None if parts[2] == "-" else parse_date(parts[2])
        if (parts[1] != "-" and start is None) or (parts[2] != "-" and end is None):
            raise ValueError("Dates must look like YYYY-MM-DD (or '-' for open-ended)")
        session.set_date_range(start, end)
        print(f"Date range {start or '...'} to {end or '...'}. Size={len(session.current())}")
        return

    if cmd == "values":
        dim = parts[1].lower() if len(parts) >= 2 else ""
        if dim not in SELECTORS:
            raise ValueError(f"values dimension must be one of: {', '.join(SELECTORS)}")
        prefix = parts[2] if len(parts) >= 3 else ""
        vals = session.indices().options(_DIMENSION_FIELDS[dim])
        if prefix:
            p = prefix.lower()
            vals = [v for v in vals if v.lower().startswith(p)]
        for v in vals[:50]:
            print(v)
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd == "sort":
        keys = _parse_sort_keys(parts[1:])
        session.sort(keys)
        out = session.current()
        desc = ", ".join(f"{k.field.value} {'desc' if k.descending else 'asc'}" for k in keys)
        print(f"Sorted {len(out)} slots by {desc}. Showing 10:")
        _print_rows(out[:10]); return

    if cmd == "topk":
        k = int(parts[1]); field = SlotField.parse(parts[2])
        out = session.topk(k, field)
        print(f"Top {len(out)} by {field.label}:")
        _print_rows(out); return

    if cmd == "metrics":
        m = session.metrics()
        print(f"Classes: {m.total_classes} | Check-ins: {m.total_checkins} | Revenue: {format_currency(m.total_revenue)}")
        print(f"Avg. class size: {m.average_class_size:.1f} | Avg. revenue/class: {format_currency(m.average_revenue)}")
        print(f"Late cancellations: {m.total_cancelled} ({m.cancellation_rate:.1f}%) | Non-empty classes: {m.total_non_empty}")
        print(f"Trainers: {m.unique_teachers} | Class types: {m.unique_classes} | Locations: {m.unique_locations}")
        return

    if cmd == "top":
        metric = parts[1].lower() if len(parts) >= 2 else "checkins"
        if metric not in ("checkins", "revenue", "classes"):
            raise ValueError("top metric must be: checkins | revenue | classes")
        bottom = len(parts) >= 3 and parts[2].lower() == "bottom"
        print(f"{'Bottom' if bottom else 'Top'} classes by {metric}:")
        for c in session.ranked_classes(metric, bottom=bottom):
            print(f"  {c.class_name} | slots={c.total_classes} checkins={c.total_checkins} revenue={format_currency(c.total_revenue)}")
        return

    if cmd == "trainers":
        metric = parts[1].lower() if len(parts) >= 2 else "checkins"
        if metric not in TRAINER_METRICS:
            raise ValueError(f"trainers metric must be: {' | '.join(TRAINER_METRICS)}")
        n = int(parts[2]) if len(parts) >= 3 else 5
        print(f"Top {n} trainers by {metric}:")
        for t in session.ranked_trainers(metric, n):
            print(f"  {t.teacher_name} | classes={t.total_occurrences} checkins={t.total_checkins} "
                  f"revenue={format_currency(t.total_revenue)} avg={t.average_including_empty:.1f} "
                  f"avg_nonempty={t.average_excluding_empty:.1f} per_class={format_currency(t.revenue_per_class)} "
                  f"cancel_rate={t.cancellation_rate:.1f}% top={t.top_class or '-'} bottom={t.bottom_class or '-'}")
        return

    if cmd == "pivot":
        if len(parts) < 4:
            raise ValueError("Usage: pivot <row> <column> <metric> [asc|desc]")
        config = PivotConfig(row_dimension=parts[1], column_dimension=parts[2], metric=parts[3])
        descending = not (len(parts) >= 5 and parts[4].lower() == "asc")
        _print_pivot(session, config, descending)
        return

    if cmd == "pivots":
        _handle_pivots(session, parts[1:])
        return

    if cmd == "export":
        # export <csv|json> ["<dir>"]
        if len(parts) < 2:
            print('Usage: export csv "<dir>"  OR  export json "<dir>"')
            return
        fmt = parts[1].lower()
        out_dir = parts[2] if len(parts) >= 3 else get_config().export_dir

        if not session.current():
            print("Nothing to export: current selection is empty.")
            return

        if fmt == "csv":
            path = session.export_csv(out_dir)
            print(f"Exported CSV to {path}")
            return

        if fmt == "json":
            path = session.export_json(out_dir)
            print(f"Exported JSON to {path}")
            return

        print("Unknown export format. Use: csv or json")
        return

    if cmd == "show":
        n = int(parts[1]) if len(parts) >= 2 else 10
        _print_rows(session.current()[:n]); return

    print("Unknown command. Type 'help'.")
    return


_DIMENSION_FIELDS = {
    "trainer": SlotField.TEACHER_NAME,
    "class": SlotField.CLEANED_CLASS,
    "location": SlotField.LOCATION,
    "day": SlotField.DAY_OF_WEEK,
    "period": SlotField.PERIOD,
}


def _parse_sort_keys(tokens: List[str]) -> List[SortKey]:
    if not tokens:
        raise ValueError("Usage: sort <field> [asc|desc] [<field> [asc|desc] ...]")
    keys: List[SortKey] = []
    i = 0
    while i < len(tokens):
        field = tokens[i]
        direction = "asc"
        if i + 1 < len(tokens) and tokens[i + 1].lower() in ("asc", "desc"):
            direction = tokens[i + 1]
            i += 1
        keys.append(SortKey.parse(field, direction))
        i += 1
    return keys


def _handle_pivots(session: Session, args: List[str]) -> None:
    sub = args[0].lower() if args else "list"
    if sub == "list":
        configs = session.pivots.list()
        if not configs:
            print("No saved pivot configurations.")
        for i, c in enumerate(configs):
            print(f"[{i}] {c.display_name()} ({c.row_dimension} x {c.column_dimension}: {c.metric})")
        return
    if sub == "save":
        if len(args) < 4:
            raise ValueError('Usage: pivots save <row> <column> <metric> ["<name>"]')
        name = args[4] if len(args) >= 5 else ""
        config = PivotConfig(name=name, row_dimension=args[1], column_dimension=args[2], metric=args[3])
        session.pivots.add(config)
        print(f"Saved pivot configuration {config.display_name()!r}.")
        return
    if sub in ("show", "delete"):
        if len(args) < 2:
            raise ValueError(f"Usage: pivots {sub} <index>")
        i = int(args[1])
        if sub == "delete":
            session.pivots.remove(i)
            print(f"Deleted pivot configuration {i}.")
            return
        configs = session.pivots.list()
        if not 0 <= i < len(configs):
            raise IndexError(f"No saved pivot configuration at position {i}")
        _print_pivot(session, configs[i], True)
        return
    raise ValueError("pivots subcommand must be: list | save | show | delete")


def _print_pivot(session: Session, config: PivotConfig, descending: bool) -> None:
    table = session.pivot(config, descending=descending)
    if not table.rows:
        print("Nothing to pivot: current selection is empty.")
        return
    print(f"{config.display_name()} ({table.metric.label}):")
    print(table.to_frame(show_totals=config.show_totals).to_string(na_rep="-"))


def _fmt_avg(v: Optional[float]) -> str:
    return "N/A" if v is None else f"{v:.1f}"


def _print_rows(rows: List[Slot]) -> None:
    for s in rows:
        print(f"[{s.unique_id}] {s.teacher_name} | {s.cleaned_class} | {s.day_of_week} {s.class_time} | {s.location} | "
              f"classes={s.total_occurrences} checkins={s.total_checkins} revenue={format_currency(s.total_revenue)} "
              f"avg={_fmt_avg(s.class_average_including_empty)} avg_nonempty={_fmt_avg(s.class_average_excluding_empty)}")


if __name__ == "__main__":
    main()
