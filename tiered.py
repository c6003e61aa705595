"""
Tiered subnet allocation
One block per tier (e.g. public/private), then one block per zone inside each tier.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from allocator import (
    AddressBlock,
    AddressFamily,
    Deferred,
    Partitioner,
    biggest_child_prefix,
    parse_block,
    partition,
    validate_prefix,
)
from errors import (
    InconsistentSubnetSize,
    InvalidConfiguration,
    MissingNetmask,
    SubnetMaskTooNarrow,
    TierMaskTooNarrow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestedSubnet:
    tier: str
    zone: str
    prefixlen: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> "RequestedSubnet":
        """Parse 'tier:zone' or 'tier:zone:prefix'"""
        parts = text.split(":")
        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            raise InvalidConfiguration(
                f"Invalid subnet request '{text}', expected tier:zone[:prefix]"
            )
        prefixlen = None
        if len(parts) == 3:
            try:
                prefixlen = int(parts[2].lstrip("/"))
            except ValueError as e:
                raise InvalidConfiguration(f"Invalid prefix in '{text}'") from e
        return cls(parts[0], parts[1], prefixlen)


@dataclass(frozen=True)
class PoolReference:
    """A VPC block that will be allocated from a pool at deploy time"""

    pool_handle: str
    netmask: Optional[int] = None
    family: AddressFamily = AddressFamily.IPV4

    def block(self) -> Deferred:
        if self.netmask is None:
            raise MissingNetmask(
                "When creating tiered subnets from a pool an explicit netmask "
                "must be provided"
            )
        return Deferred(
            f"vpc-cidr({self.pool_handle}, {self.netmask})", self.netmask, self.family
        )


def _unique(values: Iterable) -> list:
    """Distinct values in first-seen order"""
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def coerce_request(request) -> RequestedSubnet:
    if isinstance(request, RequestedSubnet):
        return request
    if isinstance(request, str):
        return RequestedSubnet.parse(request)
    if isinstance(request, dict):
        try:
            return RequestedSubnet(
                request["tier"], request["zone"], request.get("prefixlen")
            )
        except KeyError as e:
            raise InvalidConfiguration(f"Subnet request {request!r} is missing {e}") from e
    return RequestedSubnet(*request)


def _split_prefix(parent_prefix, count, explicit, family, error, label) -> int:
    computed = biggest_child_prefix(parent_prefix, count, family)
    if explicit is None:
        return computed

    validate_prefix(explicit, family)
    if explicit > computed:
        raise error(
            f"Provided {label} mask '/{explicit}' is larger than the largest "
            f"supported netmask '/{computed}'"
        )
    return explicit


class TieredSubnets:
    """
    Subnet planner for a VPC block.

    The source is either a block (literal or deferred) or a PoolReference.
    Literal sources are split arithmetically; deferred and pool-backed ones
    are split through the partitioner, symbolically by default.
    """

    def __init__(
        self,
        source,
        tier_mask: Optional[int] = None,
        partitioner: Optional[Partitioner] = None,
    ):
        if isinstance(source, PoolReference):
            self.pool: Optional[PoolReference] = source
            self.source: Optional[AddressBlock] = None
        else:
            self.pool = None
            self.source = parse_block(source)

        if tier_mask is not None:
            validate_prefix(tier_mask, self.family)

        self.tier_mask = tier_mask
        self.partitioner = partitioner

    @property
    def family(self) -> AddressFamily:
        return self.pool.family if self.pool else self.source.family

    @property
    def netmask(self) -> Optional[int]:
        return self.pool.netmask if self.pool else self.source.prefixlen

    def source_block(self) -> AddressBlock:
        if self.pool is not None:
            return self.pool.block()
        return self.source

    def allocate_vpc_cidr(self) -> dict:
        """VPC addressing options handed to the provisioning layer"""
        if self.pool is not None:
            return {
                "ipam_pool_id": self.pool.pool_handle,
                "netmask_length": self.pool.netmask,
            }
        return {"cidr_block": str(self.source)}

    def allocate_subnets(self, requested) -> Dict[Tuple[str, str], AddressBlock]:
        """Map every requested (tier, zone) pair to its block"""
        requested = [coerce_request(r) for r in requested]
        tiers = _unique(r.tier for r in requested)
        zones = _unique(r.zone for r in requested)
        if not tiers:
            return {}

        source = self.source_block()
        if source.prefixlen is None:
            raise MissingNetmask(f"Cannot plan subnets in {source}: its netmask is unknown")
        family = source.family
        tier_prefix = _split_prefix(
            source.prefixlen, len(tiers), self.tier_mask, family, TierMaskTooNarrow, "tier"
        )
        tier_blocks = partition(source, len(tiers), tier_prefix, self.partitioner)

        network_map: Dict[Tuple[str, str], AddressBlock] = {}
        for tier, tier_block in zip(tiers, tier_blocks):
            tier_subnets = [r for r in requested if r.tier == tier]

            masks = _unique(r.prefixlen for r in tier_subnets)
            if len(masks) > 1:
                raise InconsistentSubnetSize(
                    f"All subnets in tier '{tier}' must share the same mask, got "
                    + ", ".join("default" if m is None else f"/{m}" for m in masks)
                )

            tier_zones = [z for z in zones if any(r.zone == z for r in tier_subnets)]
            zone_prefix = _split_prefix(
                tier_prefix, len(tier_zones), masks[0], family, SubnetMaskTooNarrow, "subnet"
            )
            zone_blocks = partition(tier_block, len(tier_zones), zone_prefix, self.partitioner)

            for zone, block in zip(tier_zones, zone_blocks):
                network_map[(tier, zone)] = block
            logger.debug(
                "Tier %s: %s split into %d /%d zone blocks",
                tier, tier_block, len(tier_zones), zone_prefix,
            )

        return network_map

    def allocate_subnets_cidr(self, requested) -> List[AddressBlock]:
        """Blocks in the order of the requests"""
        requested = [coerce_request(r) for r in requested]
        network_map = self.allocate_subnets(requested)
        return [network_map[(r.tier, r.zone)] for r in requested]
