"""Command-line entry point for ebdeploy."""

import click

from ebdeploy import __version__
from ebdeploy.cli.commands.deploy import deploy


@click.group()
@click.version_option(version=__version__, prog_name="ebdeploy")
def main() -> None:
    """ebdeploy - deploy application bundles to AWS Elastic Beanstalk.

    Run 'ebdeploy deploy --help' for the deployment options.
    """


main.add_command(deploy)


if __name__ == "__main__":
    main()
