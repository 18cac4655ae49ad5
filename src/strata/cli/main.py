"""
Main CLI entry point for Strata.

Loads module files into a workspace and prints the resulting state.
"""

import asyncio as _asyncio
import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import click as _click
import yaml as _yaml

import strata
import strata.config as config
import strata.errors as errors
import strata.modules as strata_modules
import strata.workspace as workspace

CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

_FORMAT_OPTION = _click.option(
    "--format",
    "output_format",
    type=_click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
    help="Output format",
)


def _run_async(coro: _typing.Coroutine[_typing.Any, _typing.Any, _typing.Any]) -> _typing.Any:
    """Run an async coroutine synchronously."""
    return _asyncio.run(coro)


def _load_modules(paths: _typing.Sequence[_pathlib.Path]) -> list[strata_modules.ModuleConfig]:
    try:
        return [strata_modules.load_module_file(path) for path in paths]
    except errors.ModuleConfigError as e:
        raise _click.ClickException(str(e)) from e


async def _build_workspace(
    settings: config.Settings,
    module_configs: list[strata_modules.ModuleConfig],
) -> workspace.Workspace:
    """Create a workspace with one indexed collection per name the modules use."""
    ws = workspace.Workspace(settings)
    for module in module_configs:
        for name in module.collections:
            if ws.get_collection(name) is None:
                ws.create_collection(name, indexed=True)

    for module in module_configs:
        await ws.add_module(module)
    return ws


def _emit(data: _typing.Any, output_format: str) -> None:
    if output_format == "json":
        _click.echo(_json.dumps(data, indent=2))
    else:
        _click.echo(_yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(strata.__version__, "-v", "--version", prog_name="strata")
@_click.option(
    "--verbose",
    is_flag=True,
    help="Enable debug logging",
)
@_click.pass_context
def cli(ctx: _click.Context, verbose: bool) -> None:
    """
    Strata - layered configuration collections.

    \b
    Examples:
        strata show base.yaml overrides.yaml
        strata show base.yaml overrides.yaml --remove overrides
        strata serialize base.yaml overrides.yaml --module base
    """
    settings = config.Settings()
    level = _logging.DEBUG if verbose else _logging.getLevelName(settings.log_level)
    _logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@_click.argument(
    "files",
    nargs=-1,
    required=True,
    type=_click.Path(dir_okay=False, path_type=_pathlib.Path),
)
@_click.option(
    "--collection",
    "collection_name",
    type=str,
    default=None,
    help="Only show this collection",
)
@_click.option(
    "--remove",
    "remove_ids",
    multiple=True,
    help="Remove a module after loading (repeatable)",
)
@_FORMAT_OPTION
@_click.pass_context
def show(
    ctx: _click.Context,
    files: tuple[_pathlib.Path, ...],
    collection_name: str | None,
    remove_ids: tuple[str, ...],
    output_format: str,
) -> None:
    """Load FILES in order and show the live items of each collection.

    Each item is listed with the id of the module that owns it.
    """
    settings: config.Settings = ctx.obj["settings"]
    module_configs = _load_modules(files)

    async def _run() -> dict[str, list[dict[str, _typing.Any]]]:
        ws = await _build_workspace(settings, module_configs)
        try:
            for module_id in remove_ids:
                await ws.remove_module(module_id)

            result: dict[str, list[dict[str, _typing.Any]]] = {}
            for name, collection in ws.collections.items():
                if collection_name is not None and name != collection_name:
                    continue
                result[name] = [
                    {"module": collection.get_module_id(item), "item": item}
                    for item in collection
                ]
            return result
        finally:
            ws.destroy()

    try:
        result = _run_async(_run())
    except ValueError as e:
        raise _click.ClickException(str(e)) from e

    if collection_name is not None and collection_name not in result:
        raise _click.ClickException(f"Unknown collection: {collection_name}")
    _emit(result, output_format)


@cli.command()
@_click.argument(
    "files",
    nargs=-1,
    required=True,
    type=_click.Path(dir_okay=False, path_type=_pathlib.Path),
)
@_click.option(
    "--module",
    "module_id",
    required=True,
    help="Module to serialize",
)
@_FORMAT_OPTION
@_click.pass_context
def serialize(
    ctx: _click.Context,
    files: tuple[_pathlib.Path, ...],
    module_id: str,
    output_format: str,
) -> None:
    """Load FILES in order and print what MODULE contributes to the result."""
    settings: config.Settings = ctx.obj["settings"]
    module_configs = _load_modules(files)

    async def _run() -> strata_modules.ModuleConfig:
        ws = await _build_workspace(settings, module_configs)
        try:
            return ws.serialize_module(module_id)
        finally:
            ws.destroy()

    try:
        module = _run_async(_run())
    except errors.ModuleNotLoadedError as e:
        raise _click.ClickException(str(e)) from e

    if output_format == "json":
        _emit(module.model_dump(exclude_defaults=True), output_format)
    else:
        _click.echo(strata_modules.dump_module(module), nl=False)


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="strata")


if __name__ == "__main__":
    main()
