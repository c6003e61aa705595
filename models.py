"""
SQLAlchemy ORM Models for IPAM planning
Hierarchical: Ipam -> Scope -> Pool -> child Pool, with provisioned CIDRs,
deferred pool CIDRs and allocations hanging off each pool.

Objects work standalone or inside a session; one session is one planning pass.
"""

import enum
import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, object_session, relationship

from allocator import (
    AddressFamily,
    Deferred,
    decode_block,
    encode_block,
    is_unresolved,
    parse_block,
    token,
    validate_prefix,
)
from errors import (
    DuplicateCidr,
    DuplicateRegion,
    DuplicateTagRestrictionKey,
    InvalidConfiguration,
    InvalidPrefixLength,
    LocaleMismatch,
    NestingUnsupported,
    ScopeQuotaExceeded,
)
from tiered import PoolReference

logger = logging.getLogger(__name__)

Base = declarative_base()

SCOPE_QUOTA = 5
DEFAULT_PRIVATE_SCOPE = "default-private"
DEFAULT_PUBLIC_SCOPE = "default-public"


class ScopeType(enum.Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class PublicIpSource(enum.Enum):
    NONE = "none"
    AMAZON = "amazon"
    BYOIP = "byoip"


class BlockType(TypeDecorator):
    """Stores Resolved and Deferred blocks in one string column"""

    impl = String(255)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return encode_block(parse_block(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return decode_block(value)


def _attach(owner, obj):
    session = object_session(owner)
    if session is not None:
        session.add(obj)
    return obj


def locales_compatible(parent_locale: Optional[str], child_locale: Optional[str]) -> bool:
    """
    Two concrete locales must match. A missing locale on either side, or one
    that is still an unresolved token, passes.
    """
    if parent_locale is None or child_locale is None:
        return True
    if is_unresolved(parent_locale) or is_unresolved(child_locale):
        return True
    return parent_locale == child_locale


def supports_nesting(
    advertise_service: Optional[str], public_ip_source: Optional[PublicIpSource]
) -> bool:
    """Advertised BYOIP pools cannot have children"""
    return not (advertise_service and public_ip_source is PublicIpSource.BYOIP)


class Ipam(Base):
    """Top-level container: operating regions, scopes, discovery associations"""

    __tablename__ = "ipams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)

    # Relationships
    region_rows = relationship(
        "IpamRegion",
        back_populates="ipam",
        cascade="all, delete-orphan",
        order_by="IpamRegion.position",
    )
    scopes = relationship(
        "Scope", back_populates="ipam", cascade="all, delete-orphan", order_by="Scope.id"
    )
    discovery_associations = relationship(
        "DiscoveryAssociation",
        back_populates="ipam",
        cascade="all, delete-orphan",
        order_by="DiscoveryAssociation.id",
    )

    def __init__(self, name: str, description: Optional[str] = None, regions=()):
        self.name = name
        self.description = description

        # Every IPAM comes with one default scope of each type
        self.add_scope(DEFAULT_PRIVATE_SCOPE, ScopeType.PRIVATE, is_default=True)
        self.add_scope(DEFAULT_PUBLIC_SCOPE, ScopeType.PUBLIC, is_default=True)

        for region in regions:
            self.add_region(region)

    def __repr__(self):
        return f"<Ipam {self.name}>"

    @property
    def path(self) -> str:
        return self.name

    @property
    def handle(self) -> str:
        return token(f"{self.path}.IpamId")

    @property
    def regions(self) -> List[str]:
        return [r.name for r in self.region_rows]

    @property
    def scope_count(self) -> int:
        """All scopes, the two default ones included"""
        return len(self.scopes)

    @property
    def default_private_scope(self) -> Optional["Scope"]:
        return self._default_scope(ScopeType.PRIVATE)

    @property
    def default_public_scope(self) -> Optional["Scope"]:
        return self._default_scope(ScopeType.PUBLIC)

    def _default_scope(self, scope_type: ScopeType) -> Optional["Scope"]:
        for scope in self.scopes:
            if scope.is_default and scope.scope_type is scope_type:
                return scope
        return None

    def add_region(self, region: str) -> None:
        if region in self.regions:
            raise DuplicateRegion(
                f"Region '{region}' is already registered with IPAM '{self.path}'"
            )
        row = IpamRegion(name=region, position=len(self.region_rows))
        self.region_rows.append(row)
        _attach(self, row)

    def add_scope(
        self,
        name: str,
        scope_type: ScopeType = ScopeType.PRIVATE,
        family: AddressFamily = AddressFamily.IPV4,
        description: Optional[str] = None,
        is_default: bool = False,
    ) -> "Scope":
        if self.scope_count >= SCOPE_QUOTA:
            raise ScopeQuotaExceeded(
                f"IPAM '{self.path}' already has {self.scope_count} scopes "
                f"(quota is {SCOPE_QUOTA})"
            )
        if self.get_scope(name) is not None:
            raise InvalidConfiguration(f"Scope '{name}' already exists in IPAM '{self.path}'")

        scope = Scope(
            name=name,
            scope_type=scope_type,
            family=family,
            description=description,
            is_default=is_default,
        )
        self.scopes.append(scope)
        logger.debug("Added %s scope %s", scope_type.value, scope.path)
        return _attach(self, scope)

    def get_scope(self, name: str) -> Optional["Scope"]:
        for scope in self.scopes:
            if scope.name == name:
                return scope
        return None

    def associate_discovery(self, discovery_id: str) -> "DiscoveryAssociation":
        """Associate an external resource discovery; repeats return the same link"""
        address = hashlib.sha1(discovery_id.encode("utf-8")).hexdigest()
        key = f"resource-discovery-{address}"

        for association in self.discovery_associations:
            if association.key == key:
                return association

        association = DiscoveryAssociation(discovery_id=discovery_id, key=key)
        self.discovery_associations.append(association)
        return _attach(self, association)

    def render(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "operating_regions": self.regions,
            "resource_discoveries": [a.discovery_id for a in self.discovery_associations],
            "scopes": [s.render() for s in self.scopes],
        }


class IpamRegion(Base):
    """Operating region of an IPAM"""

    __tablename__ = "ipam_regions"
    __table_args__ = (UniqueConstraint("ipam_id", "name", name="uq_region_ipam_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False)
    position = Column(Integer, nullable=False)

    ipam_id = Column(Integer, ForeignKey("ipams.id"), nullable=False)
    ipam = relationship("Ipam", back_populates="region_rows")

    def __repr__(self):
        return f"<IpamRegion {self.name}>"


class DiscoveryAssociation(Base):
    """Link between an IPAM and an external resource discovery"""

    __tablename__ = "discovery_associations"
    __table_args__ = (UniqueConstraint("ipam_id", "key", name="uq_discovery_ipam_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    discovery_id = Column(String(255), nullable=False)
    key = Column(String(100), nullable=False)

    ipam_id = Column(Integer, ForeignKey("ipams.id"), nullable=False)
    ipam = relationship("Ipam", back_populates="discovery_associations")

    def __repr__(self):
        return f"<DiscoveryAssociation {self.discovery_id}>"


class Scope(Base):
    """Top-level grouping of pools, e.g. private vs public space"""

    __tablename__ = "scopes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    scope_type = Column(Enum(ScopeType), nullable=False)
    family = Column(Enum(AddressFamily), nullable=False)
    is_default = Column(Boolean, nullable=False)
    description = Column(Text)

    ipam_id = Column(Integer, ForeignKey("ipams.id"), nullable=False)

    # Relationships
    ipam = relationship("Ipam", back_populates="scopes")
    pools = relationship(
        "Pool", back_populates="scope", cascade="all, delete-orphan", order_by="Pool.id"
    )

    def __init__(self, name, scope_type=ScopeType.PRIVATE, family=AddressFamily.IPV4,
                 description=None, is_default=False):
        self.name = name
        self.scope_type = scope_type
        self.family = family
        self.description = description
        self.is_default = is_default

    def __repr__(self):
        return f"<Scope {self.path}>"

    @property
    def path(self) -> str:
        return f"{self.ipam.path}/{self.name}" if self.ipam else self.name

    @property
    def handle(self) -> str:
        return token(f"{self.path}.IpamScopeId")

    @property
    def top_level_pools(self) -> List["Pool"]:
        return [p for p in self.pools if p.parent is None]

    def add_pool(self, name: str, **options) -> "Pool":
        """Create a pool directly under this scope"""
        if any(p.name == name for p in self.top_level_pools):
            raise InvalidConfiguration(f"Pool '{name}' already exists in scope '{self.path}'")
        options.setdefault("family", self.family)
        return Pool.create(name, scope=self, **options)

    def get_pool(self, path: str) -> Optional["Pool"]:
        """Look up a pool by 'name/child/grandchild'"""
        names = [part for part in path.split("/") if part]
        candidates = self.top_level_pools
        pool = None
        for name in names:
            pool = next((p for p in candidates if p.name == name), None)
            if pool is None:
                return None
            candidates = pool.children
        return pool

    def render(self) -> dict:
        return {
            "name": self.name,
            "type": self.scope_type.value,
            "address_family": self.family.value,
            "is_default": self.is_default,
            "description": self.description,
            "pools": [p.render() for p in self.pools],
        }


@dataclass(frozen=True)
class PoolCidrBinding:
    """What a CIDR configuration yields once bound to a pool"""

    cidr: Optional[str] = None
    netmask_length: Optional[int] = None


class PoolCidrConfiguration:
    """A literal CIDR (inline capable) or a netmask to provision from the parent"""

    def __init__(self, cidr=None, netmask_length: Optional[int] = None):
        self._cidr = cidr
        self._netmask_length = netmask_length

    @classmethod
    def literal(cls, cidr) -> "PoolCidrConfiguration":
        return cls(cidr=cidr)

    @classmethod
    def netmask(cls, netmask_length: int) -> "PoolCidrConfiguration":
        return cls(netmask_length=netmask_length)

    @property
    def inline(self) -> bool:
        return self._cidr is not None

    def bind(self, pool: "Pool") -> PoolCidrBinding:
        if self._netmask_length is not None:
            validate_prefix(self._netmask_length, pool.family)
        return PoolCidrBinding(cidr=self._cidr, netmask_length=self._netmask_length)


@dataclass(frozen=True)
class AddCidrResult:
    cidr: Optional["PoolCidr"]
    inline: bool


class Pool(Base):
    """A node in the pool tree; public and private pools differ only by their tags"""

    __tablename__ = "pools"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    path = Column(String(500), nullable=False, unique=True)
    family = Column(Enum(AddressFamily), nullable=False)
    locale = Column(String(100))
    public_ip_source = Column(Enum(PublicIpSource), nullable=False)
    advertise_service = Column(String(50))
    publicly_advertisable = Column(Boolean)
    auto_import = Column(Boolean, nullable=False)
    description = Column(Text)
    default_netmask_length = Column(Integer)
    min_netmask_length = Column(Integer)
    max_netmask_length = Column(Integer)

    # Foreign keys
    scope_id = Column(Integer, ForeignKey("scopes.id"), nullable=False)
    parent_id = Column(Integer, ForeignKey("pools.id"))

    # Relationships
    scope = relationship("Scope", back_populates="pools")
    parent = relationship("Pool", remote_side="Pool.id", back_populates="children")
    children = relationship("Pool", back_populates="parent", order_by="Pool.id")
    provisioned = relationship(
        "ProvisionedCidr",
        back_populates="pool",
        cascade="all, delete-orphan",
        order_by="ProvisionedCidr.id",
    )
    tags = relationship(
        "TagRestriction",
        back_populates="pool",
        cascade="all, delete-orphan",
        order_by="TagRestriction.id",
    )
    pool_cidrs = relationship(
        "PoolCidr", back_populates="pool", cascade="all, delete-orphan", order_by="PoolCidr.id"
    )
    allocations = relationship(
        "Allocation",
        back_populates="pool",
        cascade="all, delete-orphan",
        order_by="Allocation.id",
    )

    @classmethod
    def create(
        cls,
        name: str,
        scope: Scope,
        parent: Optional["Pool"] = None,
        family: AddressFamily = AddressFamily.IPV4,
        locale: Optional[str] = None,
        public_ip_source: PublicIpSource = PublicIpSource.NONE,
        advertise_service: Optional[str] = None,
        publicly_advertisable: Optional[bool] = None,
        auto_import: bool = False,
        description: Optional[str] = None,
        default_netmask_length: Optional[int] = None,
        min_netmask_length: Optional[int] = None,
        max_netmask_length: Optional[int] = None,
        provisioned_cidrs=(),
        tag_restrictions: Optional[Dict[str, str]] = None,
    ) -> "Pool":
        pool = cls(
            name=name,
            path=f"{(parent or scope).path}/{name}",
            family=family,
            locale=locale,
            public_ip_source=public_ip_source,
            advertise_service=advertise_service,
            publicly_advertisable=publicly_advertisable,
            auto_import=auto_import,
            description=description,
            default_netmask_length=default_netmask_length,
            min_netmask_length=min_netmask_length,
            max_netmask_length=max_netmask_length,
        )
        pool._validate_address_configuration()

        scope.pools.append(pool)
        if parent is not None:
            parent.children.append(pool)
        _attach(scope, pool)

        for idx, cidr in enumerate(provisioned_cidrs):
            pool.add_cidr_to_pool(
                f"provisioned-{idx:03d}",
                PoolCidrConfiguration.literal(cidr),
                allow_inline=True,
            )
        for key, value in (tag_restrictions or {}).items():
            pool.add_tag_restriction(key, value)

        logger.debug("Created pool %s (%s)", pool.path, pool.family.value)
        return pool

    def __repr__(self):
        return f"<Pool {self.path}>"

    @property
    def handle(self) -> str:
        return token(f"{self.path}.IpamPoolId")

    @property
    def depth(self) -> int:
        return 1 if self.parent is None else self.parent.depth + 1

    @property
    def provisioned_cidrs(self) -> list:
        return [row.cidr for row in self.provisioned]

    @property
    def tag_restrictions(self) -> Dict[str, str]:
        return {t.key: t.value for t in self.tags}

    def _validate_address_configuration(self):
        lengths = {
            "default": self.default_netmask_length,
            "min": self.min_netmask_length,
            "max": self.max_netmask_length,
        }
        for length in lengths.values():
            if length is not None:
                validate_prefix(length, self.family)

        if (
            self.min_netmask_length is not None
            and self.max_netmask_length is not None
            and self.min_netmask_length > self.max_netmask_length
        ):
            raise InvalidPrefixLength(
                f"Pool '{self.path}' min netmask /{self.min_netmask_length} is "
                f"larger than max netmask /{self.max_netmask_length}"
            )
        if self.default_netmask_length is not None:
            self._check_netmask(self.default_netmask_length)

    def _check_netmask(self, netmask_length: int) -> int:
        validate_prefix(netmask_length, self.family)
        if self.min_netmask_length is not None and netmask_length < self.min_netmask_length:
            raise InvalidPrefixLength(
                f"/{netmask_length} is wider than the minimum /{self.min_netmask_length} "
                f"of pool '{self.path}'"
            )
        if self.max_netmask_length is not None and netmask_length > self.max_netmask_length:
            raise InvalidPrefixLength(
                f"/{netmask_length} is narrower than the maximum /{self.max_netmask_length} "
                f"of pool '{self.path}'"
            )
        return netmask_length

    def add_cidr_to_pool(
        self, name: str, configuration, allow_inline: bool = True
    ) -> AddCidrResult:
        """
        Register a CIDR with the pool.

        Literal configurations are stored inline in provisioned_cidrs when
        allowed. Everything else becomes a PoolCidr resolved by the platform.
        """
        if allow_inline and configuration.inline:
            binding = configuration.bind(self)
            if binding.cidr is None or is_unresolved(binding.cidr):
                logger.warning(
                    "Attempted to register an inline CIDR on pool '%s' using a "
                    "configuration that does not provide a concrete CIDR. Falling "
                    "back to a deferred pool CIDR; consistency with CIDRs already "
                    "registered inline cannot be guaranteed.",
                    self.path,
                )
                return self._add_pool_cidr(name, binding)

            block = parse_block(binding.cidr, self.family)
            if block.family is not self.family:
                raise InvalidConfiguration(
                    f"Cannot add {block.family.value} CIDR '{block}' to "
                    f"{self.family.value} pool '{self.path}'"
                )
            if block in self.provisioned_cidrs:
                raise DuplicateCidr(
                    f"Attempted to register duplicate cidr '{block}' to pool '{self.path}'"
                )

            row = ProvisionedCidr(cidr=block)
            self.provisioned.append(row)
            _attach(self, row)
            return AddCidrResult(cidr=None, inline=True)

        return self._add_pool_cidr(name, configuration.bind(self))

    def _add_pool_cidr(self, name: str, binding: PoolCidrBinding) -> AddCidrResult:
        path = f"{self.path}/cidr-{name}"
        if binding.cidr is not None:
            block = parse_block(binding.cidr, self.family)
        else:
            block = Deferred(f"{path}.Cidr", binding.netmask_length, self.family)

        pool_cidr = PoolCidr(
            name=name, path=path, cidr=block, netmask_length=binding.netmask_length
        )
        self.pool_cidrs.append(pool_cidr)
        _attach(self, pool_cidr)
        return AddCidrResult(cidr=pool_cidr, inline=False)

    def add_child_pool(self, name: str, **options) -> "Pool":
        """Create a child pool sharing this pool's family and scope"""
        locale = options.get("locale")
        if not locales_compatible(self.locale, locale):
            raise LocaleMismatch(
                f"Cannot add pool with a locale of '{locale}' to pool "
                f"'{self.path}' with the locale '{self.locale}'"
            )

        if not supports_nesting(self.advertise_service, self.public_ip_source):
            raise NestingUnsupported(
                f"Adding child pools to pool '{self.path}' with an advertising "
                f"service of '{self.advertise_service}' and a public IP source of "
                f"'{self.public_ip_source.value}' is not supported"
            )

        family = options.get("family")
        if family is not None and family is not self.family:
            raise InvalidConfiguration(
                f"Pool '{name}' must share the {self.family.value} family of pool '{self.path}'"
            )

        if any(child.name == name for child in self.children):
            raise InvalidConfiguration(f"Pool '{name}' already exists in pool '{self.path}'")

        if locale is None:
            options["locale"] = self.locale
        options["family"] = self.family
        return Pool.create(name, scope=self.scope, parent=self, **options)

    def allocate_cidr_from_pool(
        self,
        name: str,
        netmask_length: Optional[int] = None,
        cidr=None,
        description: Optional[str] = None,
        resource: Optional[str] = None,
    ) -> "Allocation":
        """Request a block from this pool; provisioned_cidrs is left untouched"""
        path = f"{self.path}/allocation-{name}"
        if any(a.name == name for a in self.allocations):
            raise InvalidConfiguration(f"Allocation '{name}' already exists in pool '{self.path}'")

        if cidr is not None:
            block = parse_block(cidr, self.family)
            if block.family is not self.family:
                raise InvalidConfiguration(
                    f"Cannot allocate {block.family.value} CIDR '{block}' from "
                    f"{self.family.value} pool '{self.path}'"
                )
            if block.prefixlen is not None:
                if netmask_length is not None and netmask_length != block.prefixlen:
                    raise InvalidConfiguration(
                        f"Allocation '{name}' asks for /{netmask_length} but cidr is {block}"
                    )
                netmask_length = self._check_netmask(block.prefixlen)
        else:
            if netmask_length is None:
                netmask_length = self.default_netmask_length
            if netmask_length is not None:
                self._check_netmask(netmask_length)
            block = Deferred(f"{path}.Cidr", netmask_length, self.family)

        allocation = Allocation(
            name=name,
            path=path,
            netmask_length=netmask_length,
            cidr=block,
            description=description,
            resource=resource,
        )
        self.allocations.append(allocation)
        logger.debug("Allocated %s from %s", block, self.path)
        return _attach(self, allocation)

    def add_tag_restriction(self, key: str, value: str) -> "Pool":
        if key in self.tag_restrictions:
            raise DuplicateTagRestrictionKey(
                f"Attempted to add duplicate tag restriction for key '{key}' to "
                f"pool '{self.path}'"
            )
        row = TagRestriction(key=key, value=value)
        self.tags.append(row)
        _attach(self, row)
        return self

    def reference(self, netmask: Optional[int] = None):
        """Pool reference for tiered subnet planning"""
        if netmask is None:
            netmask = self.default_netmask_length
        if netmask is not None:
            self._check_netmask(netmask)
        return PoolReference(self.handle, netmask, self.family)

    def render(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "address_family": self.family.value,
            "locale": self.locale,
            "source_pool": self.parent.handle if self.parent else None,
            "public_ip_source": (
                None if self.public_ip_source is PublicIpSource.NONE
                else self.public_ip_source.value
            ),
            "aws_service": self.advertise_service,
            "publicly_advertisable": self.publicly_advertisable,
            "auto_import": self.auto_import,
            "description": self.description,
            "allocation_default_netmask_length": self.default_netmask_length,
            "allocation_min_netmask_length": self.min_netmask_length,
            "allocation_max_netmask_length": self.max_netmask_length,
            "allocation_resource_tags": [
                {"key": k, "value": v} for k, v in self.tag_restrictions.items()
            ],
            "provisioned_cidrs": [str(c) for c in self.provisioned_cidrs],
            "pool_cidrs": [c.render() for c in self.pool_cidrs],
            "allocations": [a.render() for a in self.allocations],
        }


class ProvisionedCidr(Base):
    """Literal CIDR registered inline with a pool"""

    __tablename__ = "provisioned_cidrs"
    __table_args__ = (UniqueConstraint("pool_id", "cidr", name="uq_provisioned_pool_cidr"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    cidr = Column(BlockType, nullable=False)

    pool_id = Column(Integer, ForeignKey("pools.id"), nullable=False)
    pool = relationship("Pool", back_populates="provisioned")

    def __repr__(self):
        return f"<ProvisionedCidr {self.cidr}>"


class PoolCidr(Base):
    """CIDR provisioned to a pool by the platform (non-inline registration)"""

    __tablename__ = "pool_cidrs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    path = Column(String(500), nullable=False, unique=True)
    cidr = Column(BlockType, nullable=False)
    netmask_length = Column(Integer)

    pool_id = Column(Integer, ForeignKey("pools.id"), nullable=False)
    pool = relationship("Pool", back_populates="pool_cidrs")

    def __repr__(self):
        return f"<PoolCidr {self.name}: {self.cidr}>"

    def render(self) -> dict:
        return {
            "name": self.name,
            "pool": self.pool.handle,
            "cidr": str(self.cidr),
            "netmask_length": self.netmask_length,
        }


class TagRestriction(Base):
    """Tag that resources must carry to allocate from the pool"""

    __tablename__ = "tag_restrictions"
    __table_args__ = (UniqueConstraint("pool_id", "key", name="uq_tag_pool_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(128), nullable=False)
    value = Column(String(256), nullable=False)

    pool_id = Column(Integer, ForeignKey("pools.id"), nullable=False)
    pool = relationship("Pool", back_populates="tags")

    def __repr__(self):
        return f"<TagRestriction {self.key}={self.value}>"


class Allocation(Base):
    """A block carved out of a pool for a requesting resource"""

    __tablename__ = "allocations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    path = Column(String(500), nullable=False, unique=True)
    netmask_length = Column(Integer)
    cidr = Column(BlockType, nullable=False)
    description = Column(Text)
    resource = Column(String(255))

    pool_id = Column(Integer, ForeignKey("pools.id"), nullable=False)
    pool = relationship("Pool", back_populates="allocations")

    def __repr__(self):
        return f"<Allocation {self.name}: {self.cidr}>"

    def render(self) -> dict:
        return {
            "name": self.name,
            "pool": self.pool.handle,
            "cidr": str(self.cidr),
            "netmask_length": self.netmask_length,
            "description": self.description,
            "resource": self.resource,
        }
