"""
Supplier evaluation CLI - inspect models, score ratings, audit stored evaluations.

Usage:
    # List published models and check that each one scores a perfect set at 100%
    supplier-eval models

    # Score a rating set with the model for a date (or an explicit epoch)
    supplier-eval score --date 2026-03-01 --quality HIGH --availability MEDIUM --timeliness HIGH --price LOW
    supplier-eval score --model 2025 --quality HIGH --price MEDIUM --field-safety B

    # Re-derive a stored evaluation from its persisted ratings
    supplier-eval show 42

    # Report stored evaluations whose score/tier no longer match their ratings
    supplier-eval audit --supplier 20100070970
"""

import argparse
import sys
from datetime import date
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from supplier_eval.db.repository import EvaluationRecord, SupplierEvaluationRepository
from supplier_eval.errors import SupplierEvalError
from supplier_eval.scorers.classifier import Evaluation, evaluate_ratings
from supplier_eval.scorers.criteria import (
    CRITERION_NAMES,
    FIELD_SAFETY,
    WEIGHTED_CRITERIA,
    CriterionRating,
    Level,
    parse_field_safety,
    parse_level,
)
from supplier_eval.scorers.model_registry import (
    EvaluationModel,
    get_model,
    list_models,
    resolve_model_for_date,
)
from supplier_eval.scorers.score_calculator import explain_score
from supplier_eval.services.lifecycle import EvaluationForm
from supplier_eval.utils.logger import configure_logging

load_dotenv()
console = Console()

_LEVEL_CHOICES = [level.value for level in Level]


def rederive(record: EvaluationRecord) -> tuple[EvaluationModel, EvaluationForm, Evaluation]:
    """Recompute a stored evaluation from its persisted rating texts."""
    model = resolve_model_for_date(record.evaluation_date)
    form = EvaluationForm.from_record(record, list_models())
    return model, form, evaluate_ratings(model, form.criterion_ratings())


def _fmt(value) -> str:
    return "-" if value is None else str(value)


def cmd_models(args: argparse.Namespace) -> int:
    """List published models."""
    table = Table(title="Evaluation models")
    table.add_column("Epoch", style="bold")
    table.add_column("Years")
    table.add_column("Weights")
    table.add_column("Normalizer", justify="right")
    table.add_column("Perfect set", justify="right")

    failures = 0
    for model in list_models():
        perfect = [CriterionRating(cid, Level.HIGH) for cid in model.criteria]
        score = evaluate_ratings(model, perfect).score_percent
        if score != 100:
            failures += 1
        years = f"{_fmt(model.valid_from_year)} – {_fmt(model.valid_to_year)}"
        weights = ", ".join(f"{cid}={c.weight}" for cid, c in model.criteria.items())
        style = "green" if score == 100 else "red"
        table.add_row(model.epoch, years, weights, str(model.normalizer), f"[{style}]{score}%[/{style}]")

    console.print(table)
    return 1 if failures else 0


def cmd_score(args: argparse.Namespace) -> int:
    """Score a rating set given on the command line."""
    if args.model:
        model = get_model(args.model)
    else:
        model = resolve_model_for_date(date.fromisoformat(args.date) if args.date else None)

    ratings = [
        CriterionRating(cid, parse_level(getattr(args, cid)))
        for cid in WEIGHTED_CRITERIA
        if getattr(args, cid)
    ]
    field_level = parse_field_safety(args.field_safety)
    if field_level is not None:
        ratings.append(CriterionRating(FIELD_SAFETY, field_level))

    breakdown = explain_score(model, ratings)
    evaluation = evaluate_ratings(model, ratings)
    if breakdown is None:
        console.print("[yellow]Nothing rated: score and tier are undefined[/yellow]")
        return 0

    console.print(f"[bold]Model {model.epoch}[/bold] {model.description}")
    for term in breakdown.terms:
        console.print(
            f"  {CRITERION_NAMES[term.criterion_id]}: {term.level.value} "
            f"({model.label_for(term.criterion_id, term.level)}) → {term.value} × {term.weight}"
        )
    console.print(f"  {breakdown.formula}")
    console.print(f"Score: [bold]{evaluation.score_percent}%[/bold]")
    console.print(f"Weighted tier: {evaluation.base_tier.value}")
    if field_level is not None:
        console.print(f"Field safety: {field_level.value}")
    console.print(f"Final tier: [bold]{evaluation.tier.value}[/bold]")
    console.print(f"Status: {evaluation.status}")
    return 0


def _stored_matches(record: EvaluationRecord, evaluation: Evaluation) -> bool:
    stored_tier = record.supplier_tier or None
    derived_tier = evaluation.tier.value if evaluation.tier else None
    if stored_tier != derived_tier:
        return False
    if record.weighted_score is None or evaluation.score_fraction is None:
        return record.weighted_score is None and evaluation.score_fraction is None
    return Decimal(str(record.weighted_score)) == Decimal(str(evaluation.score_fraction))


def cmd_show(args: argparse.Namespace) -> int:
    """Show a stored evaluation with its re-derived score."""
    record = SupplierEvaluationRepository().fetch_by_id(args.record_id)
    if record is None:
        console.print(f"[red]Evaluation {args.record_id} not found[/red]")
        return 1

    model, form, evaluation = rederive(record)
    console.print(f"[bold]{record.supplier_name}[/bold] ({_fmt(record.tax_id)})")
    console.print(f"Date: {_fmt(record.evaluation_date)}  Model: {model.epoch}  Evaluator: {_fmt(record.evaluator)}")
    console.print(f"Project: {_fmt(record.project_code)} {_fmt(record.project_name)}")

    table = Table()
    table.add_column("Criterion")
    table.add_column("Stored text")
    table.add_column("Level")
    for cid in WEIGHTED_CRITERIA:
        level = form.ratings.get(cid)
        table.add_row(CRITERION_NAMES[cid], _fmt(getattr(record, f"{cid}_rating")), _fmt(level.value if level else None))
    if record.field_work_applies:
        table.add_row(CRITERION_NAMES[FIELD_SAFETY], _fmt(record.field_safety_rating), _fmt(record.field_safety_rating))
    console.print(table)

    console.print(f"Stored: score={_fmt(record.weighted_score)} tier={_fmt(record.supplier_tier)}")
    console.print(
        f"Derived: score={_fmt(evaluation.score_fraction)} tier={_fmt(evaluation.tier.value if evaluation.tier else None)}"
    )
    if evaluation.status:
        console.print(f"Status: {evaluation.status}")
    if not _stored_matches(record, evaluation):
        console.print("[yellow]Stored score/tier differ from the re-derived result[/yellow]")
    return 0


def cmd_audit(args: argparse.Namespace) -> int:
    """Re-derive every evaluation of a supplier and report mismatches."""
    records = SupplierEvaluationRepository().fetch_all_by_supplier(args.supplier)
    if not records:
        console.print(f"[yellow]No evaluations for {args.supplier}[/yellow]")
        return 0

    table = Table(title=f"Evaluations for {args.supplier}")
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Model")
    table.add_column("Stored")
    table.add_column("Derived")
    table.add_column("OK")

    mismatches = 0
    for record in records:
        model, _, evaluation = rederive(record)
        ok = _stored_matches(record, evaluation)
        if not ok:
            mismatches += 1
        derived_tier = evaluation.tier.value if evaluation.tier else None
        table.add_row(
            str(record.id),
            _fmt(record.evaluation_date),
            model.epoch,
            f"{_fmt(record.weighted_score)} / {_fmt(record.supplier_tier)}",
            f"{_fmt(evaluation.score_fraction)} / {_fmt(derived_tier)}",
            "[green]yes[/green]" if ok else "[red]no[/red]",
        )

    console.print(table)
    console.print(f"{len(records)} evaluations, {mismatches} mismatched")
    return 1 if mismatches else 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Supplier performance evaluation tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # models command
    subparsers.add_parser("models", help="List published evaluation models")

    # score command
    score_parser = subparsers.add_parser("score", help="Score a rating set")
    source = score_parser.add_mutually_exclusive_group()
    source.add_argument("--model", help="Model epoch (e.g. 2025, current)")
    source.add_argument("--date", help="Evaluation date YYYY-MM-DD (selects the model)")
    for cid in WEIGHTED_CRITERIA:
        score_parser.add_argument(f"--{cid}", type=str.upper, choices=_LEVEL_CHOICES, help=CRITERION_NAMES[cid])
    score_parser.add_argument("--field-safety", type=str.upper, choices=["A", "B", "C"], help="Field-safety rating")

    # show command
    show_parser = subparsers.add_parser("show", help="Show a stored evaluation")
    show_parser.add_argument("record_id", type=int, help="Evaluation ID")

    # audit command
    audit_parser = subparsers.add_parser("audit", help="Re-derive a supplier's evaluations")
    audit_parser.add_argument("--supplier", required=True, help="Supplier tax id or name")

    args = parser.parse_args(argv)
    configure_logging(log_level=args.log_level)

    commands = {
        "models": cmd_models,
        "score": cmd_score,
        "show": cmd_show,
        "audit": cmd_audit,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except (SupplierEvalError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
