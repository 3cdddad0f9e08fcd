"""Form document commands — lint and check."""

import asyncio
import json
from pathlib import Path

import click
import yaml

from fieldgate.errors import FieldgateError
from fieldgate.loader import lint_form_document, load_form_document


def _read_values(values_path: Path | None) -> dict:
    if values_path is None:
        return {}
    try:
        with values_path.open() as fh:
            values = yaml.safe_load(fh) or {}
    except yaml.YAMLError as e:
        click.echo(click.style(f"Error: YAML parse error in {values_path}: {e}", fg="red"), err=True)
        raise SystemExit(1)
    if not isinstance(values, dict):
        click.echo(click.style(f"Error: {values_path} must contain a mapping of field names to values", fg="red"), err=True)
        raise SystemExit(1)
    return values


@click.command()
@click.argument("form_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def lint(form_path: Path):
    """Check a form document against the schema and the rule registry."""
    issues = lint_form_document(form_path)
    for issue in issues:
        click.echo(click.style(str(issue), fg="red"))

    if issues:
        click.echo(click.style(f"\n{len(issues)} error(s) found", fg="red", bold=True))
        raise SystemExit(1)

    click.echo(click.style(f"{form_path} is valid.", fg="green", bold=True))


@click.command()
@click.argument("form_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--values",
    "values_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML/JSON file of field values overriding the document's values.",
)
@click.option("--exhaustive", is_flag=True, default=False, help="Run every rule instead of stopping at the first error.")
@click.option("--show-multiple", is_flag=True, default=False, help="Show every error of a field.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
def check(form_path: Path, values_path: Path | None, exhaustive: bool, show_multiple: bool, as_json: bool):
    """Validate the values of a form document."""
    try:
        document = load_form_document(form_path, values=_read_values(values_path))
        if exhaustive:
            document.config.stop_at_first_error = False
        if show_multiple:
            document.config.show_multiple_errors = True
        form = document.build_form()
        result = asyncio.run(form.validate_all())
    except FieldgateError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        for name, outcome in result.outcomes.items():
            if outcome.valid:
                suffix = f" ({outcome.success_message})" if outcome.success_message else ""
                click.echo(click.style(f"  ✓ {name}{suffix}", fg="green"))
                continue
            if outcome.blocked:
                click.echo(click.style(f"  ✗ {name}: blocked by an invalid field", fg="red"))
                for child in form.get(name).walk()[1:]:
                    for error in child.errors[:1]:
                        click.echo(click.style(f"    ✗ {child.name}: {error.message}", fg="red"))
            for error in outcome.visible_errors(document.config.show_multiple_errors):
                click.echo(click.style(f"  ✗ {name}: {error.message}", fg="red"))

    if not result.valid:
        if not as_json:
            click.echo(click.style(f"\n{len(result.failed)} invalid field(s)", fg="red", bold=True))
        raise SystemExit(1)

    if not as_json:
        click.echo(click.style("\nAll fields are valid.", fg="green", bold=True))
