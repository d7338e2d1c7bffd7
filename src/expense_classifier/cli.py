"""Command-line interface for the expense classifier.

Provides ``predict``, ``learn``, ``bootstrap``, ``corrections`` and
``evaluate`` commands with rich terminal output using the ``click`` and
``rich`` libraries. Settings come from ``EXPENSE_CLASSIFIER_*`` environment
variables and ``DATABASE_URL`` (a ``.env`` file is honored).

Usage::

    expense-classifier predict "jeep fare"
    expense-classifier learn "egg" Bill --user-id 7
    expense-classifier corrections --limit 20
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from .classifier import ExpenseClassifier
from .config import ClassifierSettings
from .evaluation import evaluate_classifier
from .models import Category
from .storage import CorrectionStore, Database

console = Console()

_SOURCE_STYLE = {
    "correction": "bold magenta",
    "user_pattern": "magenta",
    "rule": "bold green",
    "bayes": "cyan",
    "neural": "blue",
    "history": "yellow",
    "fallback": "dim",
    "empty": "dim",
    "error": "bold red",
}


def _open(ctx: click.Context, load_history: bool = False) -> ExpenseClassifier:
    """Build a classifier wired to the configured database."""
    settings: ClassifierSettings = ctx.obj["settings"]
    database = Database(settings.database_url)
    database.create_all()
    ctx.call_on_close(database.dispose)

    classifier = ExpenseClassifier(
        settings=settings,
        store=CorrectionStore(database),
    )
    ctx.call_on_close(classifier.close)
    if load_history:
        classifier.load_training_data()
    return classifier


@click.group()
@click.version_option(package_name="expense-classifier")
@click.option("--database-url", default=None, help="SQLAlchemy URL (overrides DATABASE_URL).")
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging verbosity.")
@click.pass_context
def main(ctx: click.Context, database_url: Optional[str], log_level: str) -> None:
    """Classify expense descriptions and learn from corrections."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = ClassifierSettings.from_env()
    except ValueError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        sys.exit(2)
    if database_url:
        settings.database_url = database_url
    # One-shot commands must see their own retrains finish.
    settings.background_training = False
    ctx.obj = {"settings": settings}


@main.command()
@click.argument("text")
@click.option("--user-id", type=int, default=None, help="Consult this user's history.")
@click.option("--history/--no-history", default=True, show_default=True,
              help="Load historical expenses before predicting.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_context
def predict(ctx: click.Context, text: str, user_id: Optional[int], history: bool,
            output: str) -> None:
    """Predict the category of an expense description.

    Example: expense-classifier predict "jeep fare"
    """
    with console.status("[bold blue]Training classifier...", spinner="dots"):
        classifier = _open(ctx, load_history=history)
        result = classifier.predict_with_history(text, user_id=user_id)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    style = _SOURCE_STYLE.get(result.source, "")
    console.print(
        f"[bold]{result.category.value}[/]  "
        f"confidence [cyan]{result.confidence:.0%}[/]  "
        f"via [{style}]{result.source}[/]"
    )
    if result.was_adjusted:
        console.print(f"[dim]adjusted: {result.adjustment_reason}[/]")


@main.command()
@click.argument("text")
@click.argument("category", type=click.Choice([c.value for c in Category], case_sensitive=False))
@click.option("--user-id", type=int, default=None, help="Owner of the correction.")
@click.option("--persist/--no-persist", default=True, show_default=True,
              help="Write the correction to the database immediately.")
@click.pass_context
def learn(ctx: click.Context, text: str, category: str, user_id: Optional[int],
          persist: bool) -> None:
    """Teach the classifier a corrected category.

    Example: expense-classifier learn "egg" Bill --user-id 7
    """
    classifier = _open(ctx)
    try:
        classifier.learn(text, category, user_id=user_id, immediate_persist=persist)
    except Exception as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    console.print(f"Learned [bold]{escape(repr(text))}[/] -> [green]{Category.parse(category).value}[/]")
    if persist:
        console.print("[dim]Correction saved.[/]")


@main.command()
@click.pass_context
def bootstrap(ctx: click.Context) -> None:
    """Create tables and train on historical expenses."""
    with console.status("[bold blue]Loading historical expenses...", spinner="dots"):
        classifier = _open(ctx)
        added = classifier.load_training_data()
    console.print(
        f"Trained on {classifier.example_count} examples "
        f"([cyan]{added}[/] from history and backfill)."
    )


@main.command()
@click.option("--limit", "-n", type=int, default=50, show_default=True,
              help="Number of rows to show.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_context
def corrections(ctx: click.Context, limit: int, output: str) -> None:
    """List persisted corrections, most recent first."""
    settings: ClassifierSettings = ctx.obj["settings"]
    database = Database(settings.database_url)
    database.create_all()
    ctx.call_on_close(database.dispose)
    rows = CorrectionStore(database).list_corrections(limit)

    if output == "json":
        click.echo(json.dumps([r.to_dict() for r in rows], indent=2))
        return

    table = Table(title="Learned corrections", show_lines=False)
    table.add_column("Item", style="white")
    table.add_column("Category", style="cyan", width=15)
    table.add_column("Count", justify="right", width=6)
    table.add_column("User", justify="center", width=6)
    table.add_column("Updated", style="dim")
    for row in rows:
        table.add_row(
            row.item_name,
            row.expense_type,
            str(row.correction_count),
            str(row.user_id if row.user_id is not None else "-"),
            row.last_updated.strftime("%Y-%m-%d %H:%M") if row.last_updated else "-",
        )
    console.print(table)


@main.command()
@click.option("--show-errors", "-e", type=int, default=10, show_default=True,
              help="Number of misclassified expenses to list.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_context
def evaluate(ctx: click.Context, show_errors: int, output: str) -> None:
    """Score each cascade stage against historical expenses."""
    with console.status("[bold blue]Evaluating...", spinner="dots"):
        classifier = _open(ctx)
        samples = classifier.store.load_historical_expenses(
            classifier.settings.historical_limit
        )
        report = evaluate_classifier(classifier, samples)

    if output == "json":
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    console.print(
        f"Accuracy: [bold]{report.accuracy:.2%}[/] "
        f"({report.correct}/{report.total} historical expenses)"
    )

    stages = Table(title="By deciding stage")
    stages.add_column("Stage")
    stages.add_column("Decided", justify="right")
    stages.add_column("Coverage", justify="right")
    stages.add_column("Accuracy", justify="right")
    for name, tally in report.stages.items():
        stages.add_row(
            Text(name, style=_SOURCE_STYLE.get(name, "")),
            str(tally.decided),
            f"{report.coverage(name):.1%}",
            f"{tally.accuracy:.1%}",
        )
    console.print(stages)

    categories = Table(title="By expected category")
    categories.add_column("Category", style="cyan", width=15)
    categories.add_column("Samples", justify="right")
    categories.add_column("Recall", justify="right")
    for category, tally in report.categories.items():
        categories.add_row(category.value, str(tally.decided), f"{tally.accuracy:.1%}")
    console.print(categories)

    if report.misclassified and show_errors > 0:
        console.print("\n[bold]Misclassified:[/]")
        for miss in report.misclassified[:show_errors]:
            console.print(
                f"  {escape(repr(miss.text))}: expected [green]{miss.expected.value}[/], "
                f"got [red]{miss.predicted.value}[/] via {miss.source}"
            )


if __name__ == "__main__":
    main()
