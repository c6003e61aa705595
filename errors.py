"""
Exceptions raised while planning address space.
All of them abort the planning pass; none are retryable.
"""


class IpamError(Exception):
    """Base exception for IPAM planning errors."""

    pass


class InvalidConfiguration(IpamError):
    """Malformed input (plan document, child count, unknown names)."""

    pass


class InvalidPrefixLength(IpamError):
    """Prefix length outside the range of the address family."""

    pass


class AddressSpaceExhausted(IpamError):
    """Not enough bits left to split a block into the requested children."""

    pass


class PrefixTooWide(IpamError):
    """Requested child block is larger than the parent can fit."""

    pass


class OverlappingCidr(IpamError):
    """Resolved blocks overlap each other or leave their parent."""

    pass


class DuplicateCidr(IpamError):
    """Literal CIDR already provisioned to the pool."""

    pass


class LocaleMismatch(IpamError):
    """Child pool locale differs from the parent pool locale."""

    pass


class NestingUnsupported(IpamError):
    """Pool cannot have child pools (advertised BYOIP space)."""

    pass


class DuplicateTagRestrictionKey(IpamError):
    """Tag restriction key already present on the pool."""

    pass


class ScopeQuotaExceeded(IpamError):
    """Too many scopes in one IPAM."""

    pass


class DuplicateRegion(IpamError):
    """Operating region already registered."""

    pass


class MissingNetmask(IpamError):
    """A pool-backed or deferred block has no known netmask."""

    pass


class TierMaskTooNarrow(IpamError):
    """Explicit tier mask is narrower than the computed tier split."""

    pass


class InconsistentSubnetSize(IpamError):
    """Subnets of the same tier ask for different masks."""

    pass


class SubnetMaskTooNarrow(IpamError):
    """Explicit subnet mask is narrower than the computed zone split."""

    pass
