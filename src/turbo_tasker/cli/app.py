from typing import Optional

import typer


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import turbo_tasker

        typer.echo(f"turbo-tasker version: {turbo_tasker.__version__}")
        raise typer.Exit()


app = typer.Typer(name="turbo-tasker")


@app.callback()
def app_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """turbo-tasker - scan aggregation and staged storage actions."""
