#!/usr/bin/env python3
"""
🏢 IPAM planning CLI
- Hierarchical: Ipam -> Scope -> Pool -> child Pool
- Tiered subnets: one block per tier, one block per zone
- One planning pass per run, nothing persisted
"""

import logging
import os
from pathlib import Path

import click
import sqlalchemy
import yaml
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.orm import sessionmaker

from allocator import parse_block, partition
from errors import InvalidConfiguration, IpamError
from models import Base
from plan import load_plan, read_plan, render_plan
from tiered import RequestedSubnet, TieredSubnets

console = Console()
db = None

# XDG config location for defaults
XDG_CONFIG_HOME = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
IPAMPLAN_CONFIG_DIR = Path(XDG_CONFIG_HOME) / "ipamplan"
IPAMPLAN_CONFIG_FILE = IPAMPLAN_CONFIG_DIR / "config.yaml"

# Legacy config location (current directory)
LEGACY_CONFIG_FILE = Path("config.yaml")

DEFAULT_CONFIG = {
    "database": {"url": "sqlite://"},
    "logging": {"level": "WARNING"},
}


def load_config(config_file=None) -> tuple:
    """
    Load config.yaml, returning (config, path).
    Priority:
    1. Custom config_file parameter
    2. XDG config: ~/.config/ipamplan/config.yaml (created if missing)
    3. Legacy: ./config.yaml in current directory
    """
    if config_file:
        config_path = Path(config_file)
    elif IPAMPLAN_CONFIG_FILE.exists():
        config_path = IPAMPLAN_CONFIG_FILE
    elif LEGACY_CONFIG_FILE.exists():
        config_path = LEGACY_CONFIG_FILE
    else:
        IPAMPLAN_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(IPAMPLAN_CONFIG_FILE, "w") as f:
            yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False)
        config_path = IPAMPLAN_CONFIG_FILE

    with open(config_path) as f:
        loaded = yaml.safe_load(f) or {}

    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    for section, values in loaded.items():
        config.setdefault(section, {}).update(values or {})
    return config, config_path


def configure_logging(level: str):
    level = str(level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise InvalidConfiguration(f"Unknown logging level '{level}' in config")

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


class PlanningDatabase:
    """In-memory store for one planning pass"""

    def __init__(self, config: dict):
        self.config = config
        url = config["database"].get("url") or "sqlite://"

        self.engine = sqlalchemy.create_engine(url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    def session(self):
        return self.Session()


def _fail(error: Exception):
    click.echo(f"❌ {error}")
    raise SystemExit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option("0.1.0", "--version", "-v")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to config.yaml file",
)
@click.option("--verbose", is_flag=True, help="Debug logging")
def cli(config_file, verbose):
    """🏢 IPAM planning CLI

    Pools | Scopes | Allocations | Tiered subnets
    Ipam → Scope → Pool → Pool
    """
    global db
    config, _ = load_config(config_file)
    try:
        configure_logging("DEBUG" if verbose else config["logging"].get("level", "WARNING"))
    except IpamError as e:
        _fail(e)
    db = PlanningDatabase(config)


@cli.command()
def quickstart():
    """🚀 Quickstart guide"""
    click.echo("""
1️⃣  ./ipamplan.py split 10.0.0.0/16 4
2️⃣  ./ipamplan.py subnets 10.0.0.0/16 -s public:az1 -s public:az2 -s private:az1 -s private:az2
3️⃣  ./ipamplan.py subnets 10.0.0.0/16 -s public:az1:18 -s public:az2:18 -s private:az1
4️⃣  ./ipamplan.py plan plan.yaml
5️⃣  ./ipamplan.py plan plan.yaml --format yaml
    """)


@cli.command()
@click.argument("cidr")
@click.argument("count", type=int)
@click.option("--prefix", "-p", type=int, default=None, help="Child prefix length")
def split(cidr, count, prefix):
    """Split a block into COUNT equal blocks"""
    try:
        blocks = partition(parse_block(cidr), count, prefix)
    except IpamError as e:
        _fail(e)

    table = Table("#", "CIDR", "Addresses", box=box.ROUNDED)
    for idx, block in enumerate(blocks):
        addresses = str(block.network.num_addresses) if block.is_resolved else "-"
        table.add_row(str(idx), str(block), addresses)
    console.print(table)


@cli.command()
@click.argument("cidr")
@click.option(
    "--subnet",
    "-s",
    "subnets",
    multiple=True,
    required=True,
    help="tier:zone[:prefix], repeatable",
)
@click.option("--tier-mask", "-t", type=int, default=None, help="Tier prefix length")
def subnets(cidr, subnets, tier_mask):
    """Plan tiered subnets inside CIDR"""
    try:
        requested = [RequestedSubnet.parse(s) for s in subnets]
        planner = TieredSubnets(cidr, tier_mask=tier_mask)
        network_map = planner.allocate_subnets(requested)
    except IpamError as e:
        _fail(e)

    table = Table("Tier", "Zone", "CIDR", box=box.ROUNDED)
    for (tier, zone), block in network_map.items():
        table.add_row(tier, zone, str(block))
    console.print(table)


@cli.command()
@click.argument("plan_file", type=click.Path(exists=True))
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "yaml"]),
    default="table",
    help="Output format",
)
def plan(plan_file, output_format):
    """📊 Build a plan file and show the result"""
    with db.session() as session:
        try:
            result = load_plan(read_plan(plan_file), session=session)
        except IpamError as e:
            _fail(e)

        if output_format == "yaml":
            click.echo(yaml.safe_dump(render_plan(result), sort_keys=False))
            return

        if result.ipam is not None:
            _print_ipam(result.ipam)
        for vpc in result.vpcs:
            _print_vpc(vpc)


def _print_ipam(ipam):
    console.print(Panel(f"🏢 IPAM {ipam.name}", style="bold cyan"))
    if ipam.regions:
        console.print(f"   Regions: {', '.join(ipam.regions)}")
    console.print(f"   Scopes: {ipam.scope_count}")

    for scope in ipam.scopes:
        console.print(f"\n🌐 Scope: {scope.name} ({scope.scope_type.value}, {scope.family.value})")

        table = Table("Pool", "Locale", "Provisioned", "Allocations", box=box.ROUNDED)
        for pool in scope.pools:
            indent = "  " * (pool.depth - 1)
            provisioned = [str(c) for c in pool.provisioned_cidrs]
            provisioned += [str(c.cidr) for c in pool.pool_cidrs]
            allocations = [f"{a.name}: {a.cidr}" for a in pool.allocations]
            table.add_row(
                f"{indent}📦 {pool.name}",
                pool.locale or "-",
                "\n".join(provisioned) or "-",
                "\n".join(allocations) or "-",
            )
        if scope.pools:
            console.print(table)
        else:
            console.print("   (no pools)")


def _print_vpc(vpc):
    source = vpc.planner.allocate_vpc_cidr()
    label = source.get("cidr_block") or f"{source['ipam_pool_id']} /{source['netmask_length']}"
    console.print(f"\n🔢 VPC: {vpc.name} ({label})")

    table = Table("Tier", "Zone", "CIDR", box=box.ROUNDED)
    for (tier, zone), block in vpc.subnets.items():
        table.add_row(tier, zone, str(block))
    console.print(table)


if __name__ == "__main__":
    cli()
