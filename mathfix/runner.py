import argparse
import dataclasses
import logging
import sys

from .config import load_settings
from .document import DocumentSession
from .file_ops import output_path_for, read_markdown_file, write_markdown_file
from .latex.validator import ValidationCache, Validator
from .latex.worker import ValidationWorker
from .llm import create_repair_client
from .orchestrator import FixOrchestrator


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mathfix", description="Find and repair broken LaTeX formulas in Markdown")
    sub = parser.add_subparsers(dest="command", required=True)

    p_check = sub.add_parser("check", help="List formulas that fail to render")
    p_check.add_argument("path", help="Markdown file")

    p_fix = sub.add_parser("fix", help="Repair invalid formulas with the configured LLM")
    p_fix.add_argument("path", help="Markdown file")
    p_fix.add_argument("--output", "-o", help="Output path (default: <name>_fixed.md)")
    p_fix.add_argument(
        "--accept",
        choices=("valid", "all", "none"),
        default="valid",
        help="Which proposed fixes to apply (default: valid)",
    )

    for p in (p_fix, sub.add_parser("models", help="List models of the provider"), sub.add_parser("ping", help="Test the provider connection")):
        p.add_argument("--provider", choices=("openai", "lm-studio", "ollama"), help="Override MATHFIX_PROVIDER")
        p.add_argument("--model", help="Override the provider model")
    return parser


def _settings_for(args):
    settings = load_settings()
    provider = getattr(args, "provider", None) or settings.provider
    patch = {"provider": provider}
    model = getattr(args, "model", None)
    if model:
        key = {"openai": "openai_model", "lm-studio": "lmstudio_model", "ollama": "ollama_model"}[provider]
        patch[key] = model
    return dataclasses.replace(settings, **patch)


def _run_check(args, settings) -> int:
    validator = Validator(cache=ValidationCache(settings.cache_size))
    with ValidationWorker(validator, settings.validation_workers) as worker:
        session = DocumentSession(validator, worker)
        f = read_markdown_file(args.path)
        session.load(f.path, f.content)
        formulas = session.analyze()
    errors = session.errors
    for formula in errors:
        print(f"{f.path}:{formula.line_number}: [{formula.delimiter_type.value}] {formula.raw_with_delimiters}")
        print(f"    {formula.error_message}")
    print(f"{len(formulas)} formulas, {len(errors)} invalid")
    return 1 if errors else 0


def _run_fix(args, settings) -> int:
    client = create_repair_client(settings)
    validator = Validator(cache=ValidationCache(settings.cache_size))
    with ValidationWorker(validator, settings.validation_workers) as worker:
        session = DocumentSession(validator, worker)
        f = read_markdown_file(args.path)
        session.load(f.path, f.content)
        session.analyze()

    errors = session.errors
    if not errors:
        print("No invalid formulas found.")
    else:
        orchestrator = FixOrchestrator(session, client, context_chars=settings.context_chars)
        outcomes = orchestrator.fix_all(errors)
        for outcome in outcomes:
            if outcome.error is not None:
                print(f"{outcome.formula_id}: repair failed: {outcome.error}")
            elif outcome.fix is not None:
                state = "ok" if outcome.fix.fixed_is_valid else f"still invalid ({outcome.fix.fixed_error_message})"
                print(f"{outcome.formula_id}: {outcome.fix.original_raw!r} -> {outcome.fix.fixed_raw!r} [{state}]")
        if args.accept == "valid":
            session.fixes.accept_all(only_valid=True)
        elif args.accept == "all":
            session.fixes.accept_all()

    out_path = args.output or output_path_for(f.path)
    write_markdown_file(out_path, session.apply_accepted_fixes())
    print(f"Wrote {out_path}")
    return 0


def _run_models(args, settings) -> int:
    models = create_repair_client(settings).list_models()
    for name in models:
        print(name)
    if not models:
        print("(no models reported)")
    return 0


def _run_ping(args, settings) -> int:
    client = create_repair_client(settings)
    ok = client.test_connection()
    print(f"{client.provider_name}: {'OK' if ok else 'unreachable'}")
    return 0 if ok else 1


_COMMANDS = {"check": _run_check, "fix": _run_fix, "models": _run_models, "ping": _run_ping}


def main(argv=None):
    args = _build_parser().parse_args(argv)
    try:
        settings = _settings_for(args)
        _setup_logging(settings.log_level)
        code = _COMMANDS[args.command](args, settings)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
