"""
Address block arithmetic
Resolved and deferred blocks, prefix math, equal-width partitioning
"""

import bisect
import enum
import ipaddress
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Tuple, Union

from errors import (
    AddressSpaceExhausted,
    InvalidConfiguration,
    InvalidPrefixLength,
    MissingNetmask,
    OverlappingCidr,
    PrefixTooWide,
)

# "${handle}" or "${handle}/24"
TOKEN_PATTERN = re.compile(r"^\$\{(?P<handle>[^{}]+)\}(?:/(?P<prefixlen>\d+))?$")
DEFERRED_PREFIX = "deferred:"


class AddressFamily(enum.Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def width(self) -> int:
        return 32 if self is AddressFamily.IPV4 else 128

    @property
    def network_class(self):
        if self is AddressFamily.IPV4:
            return ipaddress.IPv4Network
        return ipaddress.IPv6Network

    @classmethod
    def of(cls, network) -> "AddressFamily":
        return cls.IPV4 if network.version == 4 else cls.IPV6


@dataclass(frozen=True)
class Resolved:
    """A concrete block, e.g. 10.0.0.0/16"""

    network: Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

    is_resolved = True

    @classmethod
    def parse(cls, cidr: str) -> "Resolved":
        try:
            return cls(ipaddress.ip_network(cidr, strict=False))
        except ValueError as e:
            raise InvalidConfiguration(f"Invalid CIDR '{cidr}': {e}") from e

    @property
    def family(self) -> AddressFamily:
        return AddressFamily.of(self.network)

    @property
    def prefixlen(self) -> int:
        return self.network.prefixlen

    @property
    def base(self):
        return self.network.network_address

    @property
    def expression(self) -> str:
        return str(self.network)

    def __str__(self):
        return str(self.network)


@dataclass(frozen=True)
class Deferred:
    """
    A block the provisioning platform fills in later.
    The prefix length is kept when known so sizes can still be validated.
    """

    handle: str
    prefixlen: Optional[int] = None
    family: AddressFamily = AddressFamily.IPV4

    is_resolved = False

    @property
    def expression(self) -> str:
        return self.handle

    def __str__(self):
        text = "${%s}" % self.handle
        if self.prefixlen is None:
            return text
        return f"{text}/{self.prefixlen}"


@dataclass(frozen=True)
class DeferredList:
    """Symbolic result of an equal-width partition request"""

    handle: str
    count: int
    prefixlen: int
    family: AddressFamily = AddressFamily.IPV4


AddressBlock = Union[Resolved, Deferred]


def token(handle: str) -> str:
    """Build an unresolved token string for a platform-supplied value"""
    return "${%s}" % handle


def is_unresolved(value) -> bool:
    if isinstance(value, Deferred):
        return True
    return isinstance(value, str) and "${" in value


def parse_block(value, family: Optional[AddressFamily] = None) -> AddressBlock:
    """Accept a block, a CIDR literal or a token string"""
    if isinstance(value, (Resolved, Deferred)):
        return value
    if not isinstance(value, str):
        raise InvalidConfiguration(f"Cannot interpret {value!r} as an address block")

    match = TOKEN_PATTERN.match(value.strip())
    if match:
        prefixlen = match.group("prefixlen")
        return Deferred(
            match.group("handle"),
            int(prefixlen) if prefixlen is not None else None,
            family or AddressFamily.IPV4,
        )
    return Resolved.parse(value)


def encode_block(block: AddressBlock) -> str:
    if block.is_resolved:
        return str(block)
    prefixlen = "" if block.prefixlen is None else str(block.prefixlen)
    return f"{DEFERRED_PREFIX}{block.family.value}:{prefixlen}:{block.handle}"


def decode_block(text: str) -> AddressBlock:
    if text.startswith(DEFERRED_PREFIX):
        family, prefixlen, handle = text[len(DEFERRED_PREFIX):].split(":", 2)
        return Deferred(
            handle, int(prefixlen) if prefixlen else None, AddressFamily(family)
        )
    return Resolved.parse(text)


def validate_prefix(prefixlen, family: AddressFamily = AddressFamily.IPV4) -> int:
    if (
        not isinstance(prefixlen, int)
        or isinstance(prefixlen, bool)
        or prefixlen < 0
        or prefixlen > family.width
    ):
        raise InvalidPrefixLength(
            f"Prefix length {prefixlen!r} must be /0-/{family.width} for {family.value}"
        )
    return prefixlen


def biggest_child_prefix(
    parent_prefix: int, count: int, family: AddressFamily = AddressFamily.IPV4
) -> int:
    """
    Smallest prefix length p >= parent_prefix with 2 ** (p - parent_prefix) >= count,
    i.e. the widest equal children that still fit count of them.
    """
    validate_prefix(parent_prefix, family)
    if count < 1:
        raise InvalidConfiguration(f"Cannot split a block into {count} children")

    child_prefix = parent_prefix + (count - 1).bit_length()
    if child_prefix > family.width:
        raise AddressSpaceExhausted(
            f"A /{parent_prefix} cannot be split into {count} blocks "
            f"(would need /{child_prefix})"
        )
    return child_prefix


class Partitioner(Protocol):
    """Equal-width split provided by the provisioning layer"""

    def partition_equally(self, parent: AddressBlock, count: int, prefixlen: int):
        ...

    def select_nth(self, items, index: int) -> AddressBlock:
        ...


class SymbolicPartitioner:
    """Composes deferred cidr()/select() requests instead of computing them"""

    def partition_equally(
        self, parent: AddressBlock, count: int, prefixlen: int
    ) -> DeferredList:
        host_bits = parent.family.width - prefixlen
        return DeferredList(
            f"cidr({parent.expression}, {count}, {host_bits})",
            count,
            prefixlen,
            parent.family,
        )

    def select_nth(self, items: DeferredList, index: int) -> Deferred:
        if not 0 <= index < items.count:
            raise IndexError(f"Index {index} out of range for {items.count} blocks")
        return Deferred(f"select({index}, {items.handle})", items.prefixlen, items.family)


def divide(parent: Resolved, count: int, prefixlen: int) -> List[Resolved]:
    """Direct mode: first count blocks of size /prefixlen inside parent"""
    family = parent.family
    step = 1 << (family.width - prefixlen)
    start = int(parent.base)
    return [
        Resolved(family.network_class((start + i * step, prefixlen)))
        for i in range(count)
    ]


def partition(
    parent: AddressBlock,
    count: int,
    prefixlen: Optional[int] = None,
    partitioner: Optional[Partitioner] = None,
) -> List[AddressBlock]:
    """
    Split parent into count contiguous equal blocks in ascending order.

    Resolved parents are divided arithmetically unless a partitioner is
    given. Deferred parents always go through the partitioner, which
    defaults to SymbolicPartitioner.
    """
    if parent.prefixlen is None:
        raise MissingNetmask(f"Cannot partition {parent}: its netmask is unknown")

    smallest = biggest_child_prefix(parent.prefixlen, count, parent.family)
    if prefixlen is None:
        prefixlen = smallest
    else:
        validate_prefix(prefixlen, parent.family)
        if prefixlen < smallest:
            raise PrefixTooWide(
                f"Cannot fit {count} /{prefixlen} blocks in a /{parent.prefixlen}; "
                f"the widest that fits is /{smallest}"
            )

    if partitioner is None and parent.is_resolved:
        return divide(parent, count, prefixlen)

    partitioner = partitioner or SymbolicPartitioner()
    children = partitioner.partition_equally(parent, count, prefixlen)
    return [partitioner.select_nth(children, i) for i in range(count)]


class AddressSpace:
    """Used-range tracking for resolved blocks, optionally bounded by a parent"""

    def __init__(self, parent=None):
        self.parent: Optional[Resolved] = None
        self.family: Optional[AddressFamily] = None
        self.used_ranges: List[Tuple[int, int]] = []

        if parent is not None:
            self.parent = self._resolved(parent)
            self.family = self.parent.family

    def _resolved(self, block) -> Resolved:
        block = parse_block(block)
        if not block.is_resolved:
            raise InvalidConfiguration(f"Cannot check unresolved block {block}")
        if self.family is not None and block.family is not self.family:
            raise InvalidConfiguration(
                f"{block} is {block.family.value}, expected {self.family.value}"
            )
        return block

    def _network_range(self, block) -> Tuple[int, int]:
        """Get (start, end) integer range for a block"""
        network = self._resolved(block).network
        return int(network.network_address), int(network.broadcast_address)

    def contains(self, block) -> bool:
        if self.parent is None:
            return True
        start, end = self._network_range(block)
        parent_start, parent_end = self._network_range(self.parent)
        return parent_start <= start and end <= parent_end

    def add_used_range(self, block):
        """Add a resolved block to used ranges"""
        resolved = self._resolved(block)
        if self.family is None:
            self.family = resolved.family
        bisect.insort(self.used_ranges, self._network_range(resolved))
        self._merge_ranges()

    def _merge_ranges(self):
        """Merge overlapping/adjacent ranges"""
        merged = []
        for start, end in self.used_ranges:
            if merged and merged[-1][1] + 1 >= start:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])
        self.used_ranges = [(s, e) for s, e in merged]

    def is_available(self, block) -> bool:
        """Check if a block is free (no overlap with used ranges)"""
        start, end = self._network_range(block)
        for used_start, used_end in self.used_ranges:
            if not (end < used_start or start > used_end):
                return False
        return True


def verify_disjoint(blocks: Iterable, parent=None) -> None:
    """
    Re-validation for resolved values: every block must sit inside parent
    (when given) and no two blocks may overlap.
    """
    space = AddressSpace(parent)
    for block in blocks:
        if not space.contains(block):
            raise OverlappingCidr(f"{block} is outside {space.parent}")
        if not space.is_available(block):
            raise OverlappingCidr(f"{block} overlaps a block already in use")
        space.add_used_range(block)
