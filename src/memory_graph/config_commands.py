"""Configuration commands for memory graph CLI."""

from cyclopts import App

from memory_graph.config import SETTINGS, get_config

config_app = App(name="config", help="Manage configuration (backend, yaml.path, memory.*)")


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Args:
        key: Configuration key, see `config keys`
        value: Configuration value; `memory.default_label` accepts "" to disable the label
        global_: Write to ~/.memory-graph instead of the working directory
    """
    get_config(use_global=global_).set(key, value)
    print(f"Set {key} = {value} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a setting so the global value or the default applies again."""
    config = get_config(use_global=global_)
    if config.unset(key):
        print(f"Unset {key} ({_scope(global_)}), now {config.get(key)!r}")
    else:
        print(f"{key} is not set in {config.config_file}")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Show the effective value of a setting and where it comes from."""
    config = get_config(use_global=global_)
    source = config.source(key)
    if source is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {config.get(key)} ({source})")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """List every known setting with its effective value, then any other stored keys."""
    config = get_config(use_global=global_)
    stored = config.list()

    print(f"Settings for {config.config_file}:\n")
    for key in SETTINGS:
        source = config.source(key)
        value = config.get(key) if source else "<unset>"
        print(f"{key} = {value} ({source or 'unset'})")
    for key in stored:
        if key not in SETTINGS:
            print(f"{key} = {stored[key]} ({config.source(key)}, unknown key)")


@config_app.command
def keys() -> None:
    """Describe the configuration keys the memory graph reads."""
    for setting in SETTINGS.values():
        print(setting.key)
        print(f"  {setting.help}")
        if setting.choices:
            print(f"  choices: {', '.join(setting.choices)}")
        if setting.default is not None:
            print(f"  default: {setting.default}")
