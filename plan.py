"""
Plan documents
Build an IPAM tree and VPC subnet layouts from a YAML mapping, and render
the result as plain descriptors for the provisioning layer.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from allocator import AddressBlock, AddressFamily, verify_disjoint
from errors import InvalidConfiguration
from models import Ipam, PoolCidrConfiguration, PublicIpSource, Scope, ScopeType
from tiered import RequestedSubnet, TieredSubnets, coerce_request

logger = logging.getLogger(__name__)

POOL_OPTIONS = {
    "family",
    "locale",
    "public_ip_source",
    "advertise_service",
    "publicly_advertisable",
    "auto_import",
    "description",
    "default_netmask_length",
    "min_netmask_length",
    "max_netmask_length",
    "provisioned_cidrs",
    "tag_restrictions",
}
POOL_KEYS = POOL_OPTIONS | {"name", "pools", "cidrs", "allocations"}


@dataclass
class VpcLayout:
    name: str
    planner: TieredSubnets
    requested: List[RequestedSubnet]
    subnets: Dict[Tuple[str, str], AddressBlock] = field(default_factory=dict)


@dataclass
class Plan:
    ipam: Optional[Ipam]
    vpcs: List[VpcLayout]


def read_plan(path) -> dict:
    with open(Path(path)) as f:
        try:
            document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfiguration(f"Plan file {path} is not valid YAML: {e}") from e
    if not isinstance(document, dict):
        raise InvalidConfiguration(f"Plan file {path} must contain a mapping")
    return document


def _require(doc: dict, key: str, where: str):
    if not isinstance(doc, dict) or key not in doc:
        raise InvalidConfiguration(f"Missing '{key}' in {where}")
    return doc[key]


def load_plan(document: dict, session=None) -> Plan:
    """Build every object in the document; any error aborts the whole plan"""
    ipam_doc = document.get("ipam")
    ipam = _build_ipam(ipam_doc, session) if ipam_doc else None

    vpcs = [_build_vpc(doc, ipam) for doc in document.get("vpcs") or []]

    if session is not None:
        session.flush()
    return Plan(ipam=ipam, vpcs=vpcs)


def _build_ipam(doc: dict, session=None) -> Ipam:
    ipam = Ipam(
        name=_require(doc, "name", "ipam"),
        description=doc.get("description"),
        regions=doc.get("regions") or [],
    )
    if session is not None:
        session.add(ipam)

    for discovery_id in doc.get("resource_discoveries") or []:
        ipam.associate_discovery(discovery_id)

    for scope_doc in doc.get("scopes") or []:
        name = _require(scope_doc, "name", "scope")
        scope = ipam.get_scope(name)
        if scope is not None and scope.is_default:
            # Built-in scopes only take pools
            extra = set(scope_doc) - {"name", "pools"}
            if extra:
                raise InvalidConfiguration(
                    f"Default scope '{name}' cannot set: {', '.join(sorted(extra))}"
                )
        else:
            try:
                scope_type = ScopeType(scope_doc.get("type", "private"))
                family = AddressFamily(scope_doc.get("family", "ipv4"))
            except ValueError as e:
                raise InvalidConfiguration(f"Scope '{name}': {e}") from e

            scope = ipam.add_scope(
                name,
                scope_type=scope_type,
                family=family,
                description=scope_doc.get("description"),
            )
        for pool_doc in scope_doc.get("pools") or []:
            _build_pool(scope, pool_doc)

    return ipam


def _build_pool(owner, doc: dict):
    name = _require(doc, "name", f"pool under '{owner.path}'")
    unknown = set(doc) - POOL_KEYS
    if unknown:
        raise InvalidConfiguration(
            f"Pool '{name}' has unknown keys: {', '.join(sorted(unknown))}"
        )

    options = {k: v for k, v in doc.items() if k in POOL_OPTIONS}
    try:
        if "family" in options:
            options["family"] = AddressFamily(options["family"])
        if "public_ip_source" in options:
            options["public_ip_source"] = PublicIpSource(options["public_ip_source"])
    except ValueError as e:
        raise InvalidConfiguration(f"Pool '{name}': {e}") from e

    if isinstance(owner, Scope):
        pool = owner.add_pool(name, **options)
    else:
        pool = owner.add_child_pool(name, **options)

    for cidr_doc in doc.get("cidrs") or []:
        pool.add_cidr_to_pool(
            _require(cidr_doc, "name", f"cidr of pool '{pool.path}'"),
            PoolCidrConfiguration.netmask(_require(cidr_doc, "netmask", pool.path)),
            allow_inline=False,
        )

    for alloc_doc in doc.get("allocations") or []:
        pool.allocate_cidr_from_pool(
            _require(alloc_doc, "name", f"allocation of pool '{pool.path}'"),
            netmask_length=alloc_doc.get("netmask"),
            cidr=alloc_doc.get("cidr"),
            description=alloc_doc.get("description"),
            resource=alloc_doc.get("resource"),
        )

    for child_doc in doc.get("pools") or []:
        _build_pool(pool, child_doc)

    return pool


def _requested_subnets(doc: dict, name: str) -> List[RequestedSubnet]:
    if "tiers" in doc or "zones" in doc:
        tiers = _require(doc, "tiers", f"vpc '{name}'")
        zones = _require(doc, "zones", f"vpc '{name}'")
        prefixlen = doc.get("subnet_mask")
        return [RequestedSubnet(t, z, prefixlen) for t in tiers for z in zones]
    return [coerce_request(r) for r in _require(doc, "subnets", f"vpc '{name}'")]


def _build_vpc(doc: dict, ipam: Optional[Ipam]) -> VpcLayout:
    name = _require(doc, "name", "vpc")

    if "cidr" in doc:
        source = doc["cidr"]
    elif "pool" in doc:
        if ipam is None:
            raise InvalidConfiguration(f"VPC '{name}' uses a pool but the plan has no ipam")
        scope_name, _, pool_path = doc["pool"].partition("/")
        scope = ipam.get_scope(scope_name)
        pool = scope.get_pool(pool_path) if scope else None
        if pool is None:
            raise InvalidConfiguration(f"VPC '{name}': pool '{doc['pool']}' not found")
        source = pool.reference(doc.get("netmask"))
    else:
        raise InvalidConfiguration(f"VPC '{name}' needs either 'cidr' or 'pool'")

    planner = TieredSubnets(source, tier_mask=doc.get("tier_mask"))
    requested = _requested_subnets(doc, name)
    subnets = planner.allocate_subnets(requested)

    source_block = planner.source_block()
    if source_block.is_resolved:
        verify_disjoint(subnets.values(), parent=source_block)

    logger.debug("VPC %s: %d subnets planned", name, len(subnets))
    return VpcLayout(name=name, planner=planner, requested=requested, subnets=subnets)


def render_plan(plan: Plan) -> dict:
    return {
        "ipam": plan.ipam.render() if plan.ipam else None,
        "vpcs": [
            {
                "name": vpc.name,
                "vpc": vpc.planner.allocate_vpc_cidr(),
                "subnets": [
                    {"tier": tier, "zone": zone, "cidr": str(block)}
                    for (tier, zone), block in vpc.subnets.items()
                ],
            }
            for vpc in plan.vpcs
        ],
    }
