import argparse
import json
import sys

from generator import generate, inspect_grammar, set_verbose, trace
from weave.config import SETTINGS_FILE, EngineSettings, load_grammar, load_settings
from weave.diagnostics import log
from weave.errors import WeaveError


def resolve_settings(args):
    """Settings file first, then command line overrides."""
    settings = load_settings(getattr(args, "config", None))
    overrides = {}
    if getattr(args, "start", None):
        overrides["start"] = args.start
    if getattr(args, "seed", None) is not None:
        overrides["seed"] = args.seed
    if getattr(args, "strict", False):
        overrides["strict_modifiers"] = True
        overrides["strict_rules"] = True
    return settings.model_copy(update=overrides)


def cmd_run(args):
    rules = load_grammar(args.filename)
    for output in generate(rules, count=args.count, settings=resolve_settings(args)):
        print(output)


def cmd_trace(args):
    rules = load_grammar(args.filename)
    snapshots, output = trace(rules, settings=resolve_settings(args))
    width = len(str(len(snapshots)))
    for step, text in snapshots:
        print(f"{step:>{width}} | {text}")
    print(output)


def cmd_rules(args):
    report = inspect_grammar(load_grammar(args.filename))
    if args.json:
        print(json.dumps(report.model_dump(), indent=2))
        return
    for name in report.rules:
        refs = report.references.get(name) or []
        print(f"{name}: {', '.join(refs) if refs else '-'}")
    if report.bound_keys:
        print(f"\nKeys bound by actions: {', '.join(report.bound_keys)}")
    if report.undefined:
        print(f"\nUndefined: {', '.join(report.undefined)}")


def cmd_init(args):
    with open(SETTINGS_FILE, "w") as f:
        json.dump(EngineSettings().model_dump(), f, indent=2)
    log(f"Wrote default settings to {SETTINGS_FILE}.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Taleweave generative grammar CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    parser.add_argument("--config", help=f"Settings file (default: {SETTINGS_FILE})")
    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser("run", help="Generate text from a grammar")
    run.add_argument("filename", nargs="?", default="-", help="JSON grammar file (default: read from stdin)")
    run.add_argument("--start", help="Start rule or text (default: origin)")
    run.add_argument("--seed", type=int, help="Seed for repeatable output")
    run.add_argument("--count", type=int, default=1, help="Number of outputs")
    run.add_argument("--strict", action="store_true", help="Fail on undefined rules and unknown modifiers")

    trace_cmd = subparsers.add_parser("trace", help="Show each expansion step")
    trace_cmd.add_argument("filename")
    trace_cmd.add_argument("--start", help="Start rule or text (default: origin)")
    trace_cmd.add_argument("--seed", type=int, help="Seed for repeatable output")

    rules = subparsers.add_parser("rules", help="List rules, references and undefined names")
    rules.add_argument("filename")
    rules.add_argument("--json", action="store_true", help="Print the report as JSON")

    subparsers.add_parser("init", help="Write a default settings file")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    try:
        if args.command == "run": cmd_run(args)
        elif args.command == "trace": cmd_trace(args)
        elif args.command == "rules": cmd_rules(args)
        elif args.command == "init": cmd_init(args)
        else: parser.print_help()
    except WeaveError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
