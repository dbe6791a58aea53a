"""Init command implementation."""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import Config, ConfigModel, default_config_path, save_config
from ..db import init_database, validate_connection

console = Console()


def init_command(
    ctx: typer.Context,
    config_path: Path = typer.Option(
        None,
        "--config-path",
        "-c",
        help="Where to write the configuration file (defaults to the global --config)",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("newsagg", "--db-name", help="Database name"),
    db_user: str = typer.Option("newsagg_user", "--db-user", help="Database user"),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Replace an existing configuration file",
    ),
) -> None:
    """Initialize news aggregator configuration and database."""
    console.print(Panel.fit("📰 News Aggregator - Initialization", style="bold blue"))

    if config_path is None:
        config_path = ctx.obj.config_path if isinstance(ctx.obj, Config) else default_config_path()

    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "NEWSAGG_DB_PASSWORD",
        },
    )

    if config_path.exists() and not overwrite:
        console.print(f"Keeping existing config: {config_path} (use --overwrite to replace)")
    else:
        save_config(config, config_path)
        console.print(f"✅ Created config: {config_path}")

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = config.postgres.model_dump()

    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: "
            "[bold]export NEWSAGG_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(db_config)
        console.print("✅ Database schema initialized")
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ News aggregator initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export NEWSAGG_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set provider keys: [bold]NEWSAPI_KEY, GUARDIAN_API_KEY, NYT_API_KEY[/bold]\n"
            f"3. Run: [bold]newsagg fetch[/bold]",
            style="green",
        )
    )
