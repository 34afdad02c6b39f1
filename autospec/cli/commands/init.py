"""autospec init command."""

from pathlib import Path

import click

from autospec.cli.output import console
from autospec.config import create_default_config, save_config
from autospec.config.loader import PROJECT_DIR_NAME

GITIGNORE_CONTENT = """# autospec generated files
logs/
state/
*.tmp
*.bak
"""


@click.command()
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite an existing configuration",
)
def init_command(force: bool) -> None:
    """Initialize autospec in the current project.

    Creates a .autospec directory with a default configuration and the
    state, log and memory directories.

    \b
    Examples:
        autospec init           # Initialize with default settings
        autospec init --force   # Rewrite the default configuration
    """
    project_root = Path.cwd()
    autospec_dir = project_root / PROJECT_DIR_NAME
    config_path = autospec_dir / "config.yaml"

    if config_path.exists() and not force:
        console.print(
            f"[yellow]autospec already initialized in {project_root}[/yellow]\n"
            "Use --force to reinitialize"
        )
        return

    try:
        for name in ("state", "logs", "memory"):
            (autospec_dir / name).mkdir(parents=True, exist_ok=True)

        gitignore_path = autospec_dir / ".gitignore"
        if not gitignore_path.exists() or force:
            gitignore_path.write_text(GITIGNORE_CONTENT, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Initialization failed: {e}")

    save_config(create_default_config(), config_path)

    console.print(f"[green]✓[/green] autospec initialized in {project_root}")
    console.print(f"[dim]Configuration:[/dim] {config_path}")
    console.print("\n[bold]Next steps:[/bold]")
    console.print("1. Review and customize .autospec/config.yaml")
    console.print('2. Create your first spec: autospec specify "<feature description>"')
    console.print("3. Carry it through: autospec run -pti")
