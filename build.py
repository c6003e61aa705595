#!/usr/bin/env python3
"""
Build a standalone ipamplan executable with PyInstaller
Usage: python3 build.py [--version VERSION] [--onedir]
"""

from pathlib import Path

import click
import PyInstaller.__main__

SCRIPT = Path("ipamplan.py")
CONFIG_FILE = Path("config.yaml")
NAME = "ipamplan"

# Local modules imported by the CLI
MODULES = ["allocator", "errors", "models", "plan", "tiered"]


def pyinstaller_args(output_name: str, onedir: bool = False) -> list:
    args = [
        str(SCRIPT),
        "--onedir" if onedir else "--onefile",
        f"--name={output_name}",
        f"--add-data={CONFIG_FILE}:.",
    ]
    args += [f"--hidden-import={module}" for module in MODULES]
    args += [
        "--hidden-import=sqlalchemy.dialects.sqlite",
        "--hidden-import=rich.logging",
        "--collect-all=sqlalchemy",
        "--collect-all=rich",
        "--clean",
        "--noconfirm",
    ]
    return args


@click.command()
@click.option("--version", "version", default=None, help="Version suffix for the executable")
@click.option("--onedir", is_flag=True, help="Build a directory instead of a single file")
def build(version, onedir):
    """🔨 Package ipamplan.py and config.yaml"""
    for required in [SCRIPT, CONFIG_FILE, *(Path(f"{m}.py") for m in MODULES)]:
        if not required.exists():
            click.echo(f"❌ Error: {required} not found!")
            raise SystemExit(1)

    output_name = NAME if version is None else f"{NAME}-v{version}"
    click.echo(f"🔨 Building standalone executable for {SCRIPT}...")
    click.echo(f"📦 Version: {version or 'latest'}")
    click.echo(f"📁 Output: dist/{output_name}")

    PyInstaller.__main__.run(pyinstaller_args(output_name, onedir))

    click.echo(f"✅ Build complete! Executable: dist/{output_name}")


if __name__ == "__main__":
    build()
