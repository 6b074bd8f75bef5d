"""CLI entrypoint: Typer app definition and command registration"""

import typer

from tagdoc.cli.commands import build_cmd, pages_cmd


app = typer.Typer(name="tagdoc", no_args_is_help=True, help="Compile tagged documentation into one JSON document")

app.command(name="build")(build_cmd)
app.command(name="pages")(pages_cmd)
