from deploykit.cli.main import cli

cli()
