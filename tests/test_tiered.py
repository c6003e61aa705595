"""Tests for tier/zone subnet planning."""

import pytest

from allocator import AddressFamily, Deferred, Resolved
from conftest import ResolvingPartitioner
from errors import (
    AddressSpaceExhausted,
    InconsistentSubnetSize,
    InvalidConfiguration,
    InvalidPrefixLength,
    MissingNetmask,
    PrefixTooWide,
    SubnetMaskTooNarrow,
    TierMaskTooNarrow,
)
from tiered import PoolReference, RequestedSubnet, TieredSubnets, coerce_request

TWO_BY_TWO = ["public:az1", "public:az2", "private:az1", "private:az2"]


def _as_text(network_map):
    return {pair: str(block) for pair, block in network_map.items()}


class TestRequestedSubnet:
    def test_parse(self):
        assert RequestedSubnet.parse("public:az1") == RequestedSubnet("public", "az1")
        assert RequestedSubnet.parse("public:az1:24") == RequestedSubnet("public", "az1", 24)
        assert RequestedSubnet.parse("public:az1:/24").prefixlen == 24

    @pytest.mark.parametrize("text", ["public", ":az1", "public:", "a:b:c:d", "a:b:wide"])
    def test_parse_invalid(self, text):
        with pytest.raises(InvalidConfiguration):
            RequestedSubnet.parse(text)

    def test_coerce(self):
        assert coerce_request({"tier": "a", "zone": "z"}) == RequestedSubnet("a", "z")
        assert coerce_request(("a", "z", 20)) == RequestedSubnet("a", "z", 20)
        with pytest.raises(InvalidConfiguration, match="zone"):
            coerce_request({"tier": "a"})


class TestDirectMode:
    def test_two_tiers_two_zones(self):
        network_map = TieredSubnets("10.0.0.0/16").allocate_subnets(TWO_BY_TWO)
        assert _as_text(network_map) == {
            ("public", "az1"): "10.0.0.0/18",
            ("public", "az2"): "10.0.64.0/18",
            ("private", "az1"): "10.0.128.0/18",
            ("private", "az2"): "10.0.192.0/18",
        }

    def test_same_request_same_result(self):
        planner = TieredSubnets("10.0.0.0/16")
        assert planner.allocate_subnets(TWO_BY_TWO) == planner.allocate_subnets(TWO_BY_TWO)
        assert TieredSubnets("10.0.0.0/16").allocate_subnets(TWO_BY_TWO) == (
            planner.allocate_subnets(TWO_BY_TWO)
        )

    def test_zone_split_sized_per_tier(self):
        requested = [f"app:z{i}" for i in range(1, 7)] + ["db:z1", "db:z2"]
        network_map = TieredSubnets("10.0.0.0/16").allocate_subnets(requested)

        app = [network_map[("app", f"z{i}")] for i in range(1, 7)]
        assert {b.prefixlen for b in app} == {20}
        assert network_map[("db", "z1")] == Resolved.parse("10.0.128.0/18")
        assert network_map[("db", "z2")] == Resolved.parse("10.0.192.0/18")

    def test_six_and_five_zones(self):
        requested = [f"a:z{i}" for i in range(1, 7)] + [f"b:z{i}" for i in range(1, 6)]
        network_map = TieredSubnets("10.0.0.0/16").allocate_subnets(requested)

        assert len(network_map) == 11
        b_blocks = [network_map[("b", f"z{i}")] for i in range(1, 6)]
        assert str(b_blocks[0]) == "10.0.128.0/20"
        assert str(b_blocks[-1]) == "10.0.192.0/20"

    def test_zones_keep_first_seen_order(self):
        requested = ["a:z1", "a:z2", "b:z2", "b:z1"]
        network_map = TieredSubnets("10.0.0.0/16").allocate_subnets(requested)
        assert str(network_map[("b", "z1")]) == "10.0.128.0/18"
        assert str(network_map[("b", "z2")]) == "10.0.192.0/18"

    def test_tier_with_a_subset_of_zones(self):
        requested = ["a:z1", "a:z2", "a:z3", "b:z3"]
        network_map = TieredSubnets("10.0.0.0/16").allocate_subnets(requested)
        assert str(network_map[("a", "z3")]) == "10.0.64.0/19"
        assert str(network_map[("b", "z3")]) == "10.0.128.0/17"

    def test_blocks_stay_inside_their_tier(self):
        requested = [f"{t}:z{i}" for t in ("a", "b", "c") for i in range(1, 4)]
        network_map = TieredSubnets("172.16.0.0/12").allocate_subnets(requested)

        tiers = {"a": "172.16.0.0/14", "b": "172.20.0.0/14", "c": "172.24.0.0/14"}
        for (tier, _), block in network_map.items():
            assert block.network.subnet_of(Resolved.parse(tiers[tier]).network)

    def test_request_order(self):
        requested = ["private:az2", "public:az1", "private:az1", "public:az2"]
        blocks = TieredSubnets("10.0.0.0/16").allocate_subnets_cidr(requested)
        assert [str(b) for b in blocks] == [
            "10.0.0.0/18",
            "10.0.192.0/18",
            "10.0.64.0/18",
            "10.0.128.0/18",
        ]

    def test_duplicate_pairs(self):
        requested = ["public:az1", "public:az1", "public:az2"]
        planner = TieredSubnets("10.0.0.0/16")
        assert len(planner.allocate_subnets(requested)) == 2
        blocks = planner.allocate_subnets_cidr(requested)
        assert blocks[0] == blocks[1]
        assert [str(b) for b in blocks[1:]] == ["10.0.0.0/17", "10.0.128.0/17"]

    def test_nothing_requested(self):
        assert TieredSubnets("10.0.0.0/16").allocate_subnets([]) == {}

    def test_ipv6(self):
        network_map = TieredSubnets("2001:db8::/56").allocate_subnets(TWO_BY_TWO)
        assert _as_text(network_map) == {
            ("public", "az1"): "2001:db8::/58",
            ("public", "az2"): "2001:db8:0:40::/58",
            ("private", "az1"): "2001:db8:0:80::/58",
            ("private", "az2"): "2001:db8:0:c0::/58",
        }

    def test_exhausted(self):
        with pytest.raises(AddressSpaceExhausted):
            TieredSubnets("10.0.0.0/31").allocate_subnets(TWO_BY_TWO)


class TestMasks:
    def test_mixed_masks_in_a_tier(self):
        requested = [("public", "az1", 24), ("public", "az2", None)]
        with pytest.raises(InconsistentSubnetSize, match="public"):
            TieredSubnets("10.0.0.0/16").allocate_subnets(requested)

    def test_different_masks_across_tiers(self):
        requested = ["public:az1:18", "public:az2:18", "private:az1"]
        network_map = TieredSubnets("10.0.0.0/16").allocate_subnets(requested)
        assert str(network_map[("public", "az2")]) == "10.0.64.0/18"
        assert str(network_map[("private", "az1")]) == "10.0.128.0/17"

    def test_subnet_mask_larger_than_computed(self):
        requested = [f"{r}:19" for r in TWO_BY_TWO]
        with pytest.raises(SubnetMaskTooNarrow):
            TieredSubnets("10.0.0.0/16").allocate_subnets(requested)

    def test_subnet_mask_that_cannot_fit(self):
        requested = [f"{r}:17" for r in TWO_BY_TWO]
        with pytest.raises(PrefixTooWide):
            TieredSubnets("10.0.0.0/16").allocate_subnets(requested)

    def test_tier_mask(self):
        network_map = TieredSubnets("10.0.0.0/16", tier_mask=17).allocate_subnets(TWO_BY_TWO)
        assert str(network_map[("private", "az1")]) == "10.0.128.0/18"

    def test_tier_mask_larger_than_computed(self):
        with pytest.raises(TierMaskTooNarrow, match="/18"):
            TieredSubnets("10.0.0.0/16", tier_mask=18).allocate_subnets(TWO_BY_TWO)

    def test_tier_mask_out_of_range(self):
        with pytest.raises(InvalidPrefixLength):
            TieredSubnets("10.0.0.0/16", tier_mask=33)


class TestDeferredSources:
    def test_pool_reference_needs_netmask(self):
        planner = TieredSubnets(PoolReference("pool-1"))
        with pytest.raises(MissingNetmask):
            planner.allocate_subnets(TWO_BY_TWO)

    def test_deferred_source_needs_netmask(self):
        planner = TieredSubnets("${vpc.Cidr}")
        with pytest.raises(MissingNetmask, match="vpc.Cidr"):
            planner.allocate_subnets(["a:z1", "b:z1"])

    def test_pool_reference_is_composed_symbolically(self):
        planner = TieredSubnets(PoolReference("pool-1", 16))
        network_map = planner.allocate_subnets(TWO_BY_TWO)

        assert network_map[("public", "az2")] == Deferred(
            "select(1, cidr(select(0, cidr(vpc-cidr(pool-1, 16), 2, 15)), 2, 14))", 18
        )
        assert all(block.prefixlen == 18 for block in network_map.values())

    def test_structural_checks_without_literals(self):
        planner = TieredSubnets(PoolReference("pool-1", 16), tier_mask=18)
        with pytest.raises(TierMaskTooNarrow):
            planner.allocate_subnets(TWO_BY_TWO)

    def test_vpc_cidr_options(self):
        assert TieredSubnets(PoolReference("pool-1", 20)).allocate_vpc_cidr() == {
            "ipam_pool_id": "pool-1",
            "netmask_length": 20,
        }
        assert TieredSubnets("10.0.0.0/16").allocate_vpc_cidr() == {"cidr_block": "10.0.0.0/16"}

    def test_pool_reference_from_pool(self, scope):
        pool = scope.add_pool("vpcs", default_netmask_length=20, provisioned_cidrs=["10.0.0.0/8"])
        reference = pool.reference()
        assert reference == PoolReference("${global/corp/vpcs.IpamPoolId}", 20)

        planner = TieredSubnets(reference)
        assert planner.netmask == 20
        assert planner.family is AddressFamily.IPV4

    def test_resolved_by_platform_matches_direct_mode(self):
        partitioner = ResolvingPartitioner({"vpc.Cidr": "10.0.0.0/16"})
        deferred = TieredSubnets("${vpc.Cidr}/16", partitioner=partitioner)

        assert deferred.allocate_subnets(TWO_BY_TWO) == (
            TieredSubnets("10.0.0.0/16").allocate_subnets(TWO_BY_TWO)
        )
        assert partitioner.requests[0] == (Deferred("vpc.Cidr", 16), 2, 17)
