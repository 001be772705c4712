"""Settings CLI commands for prov-comp.

Manages settings.json (machine preferences, profile location) and
creates the default profile.yaml.
"""

import click
import yaml

from provcomp.sdk import (
    ConfigValidationError,
    get_config_dir,
    get_profile_path,
    get_settings_path,
    init_profile,
    load_profile,
    load_settings,
    set_setting,
)


@click.group()
def settings():
    """Manage settings (settings.json) and the modeling profile.

    Available settings:
    - profile: path to profile.yaml (if not in the config directory)
    - default_output_format: preferred output format
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and the active profile."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
    else:
        click.echo("No settings configured (using defaults).")

    profile_path = get_profile_path()
    click.echo()
    click.echo(f"Profile: {profile_path}")
    if not profile_path.exists():
        click.echo("  (not found - run 'prov-comp settings init')")
        return
    try:
        profile = load_profile()
    except ConfigValidationError as e:
        raise click.ClickException(str(e))
    click.echo(yaml.safe_dump(profile, default_flow_style=False, sort_keys=False))


@settings.command("path")
def settings_path():
    """Show configuration paths."""
    click.echo(f"Config directory: {get_config_dir()}")
    click.echo(f"Settings file:    {get_settings_path()}")
    click.echo(f"Profile:          {get_profile_path()}")


@settings.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing profile.")
def settings_init(force):
    """Create profile.yaml with default modeling settings."""
    try:
        path = init_profile(force=force)
    except FileExistsError as e:
        raise click.ClickException(f"{e}\nUse --force to overwrite.")
    click.echo(f"Created profile: {path}")


@settings.command("set")
@click.argument("key")
@click.argument("value")
def settings_set(key, value):
    """Set a value in settings.json.

    \b
    Examples:
      prov-comp settings set profile ~/plans/fy27.yaml
      prov-comp settings set default_output_format json
    """
    path = set_setting(key, value)
    click.echo(f"Set {key}: {value}")
    click.echo(f"Saved to: {path}")
