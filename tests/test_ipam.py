#!/usr/bin/env python3
"""Address arithmetic tests"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import ipaddress

import pytest

from slsgen import ipam
from slsgen.errors import AllocationError, VlanConflict

def net(cidr):
    return ipaddress.ip_network(cidr)

def test_parse_network():
    assert ipam.parse_network("10.1.1.0/16") == net("10.1.0.0/16")
    assert ipam.parse_network(" 10.252.0.0/17 ") == net("10.252.0.0/17")
    block = net("10.0.0.0/8")
    assert ipam.parse_network(block) is block
    with pytest.raises(AllocationError):
        ipam.parse_network("10.0.0.300/24")
    with pytest.raises(AllocationError):
        ipam.parse_network(None)

def test_free_subnet():
    parent = net("10.252.0.0/17")
    assert ipam.free_subnet(parent, 24, []) == net("10.252.0.0/24")
    assert ipam.free_subnet(parent, 24, [net("10.252.0.0/24")]) == net("10.252.1.0/24")
    # /23 blocks are aligned past everything they would overlap
    allocated = [net("10.252.0.0/24"), net("10.252.1.0/24")]
    assert ipam.free_subnet(parent, 23, allocated) == net("10.252.2.0/23")
    # a gap left by a smaller block is reused
    allocated = [net("10.252.0.0/29"), net("10.252.1.0/24")]
    assert ipam.free_subnet(parent, 25, allocated) == net("10.252.0.128/25")

def test_free_subnet_errors():
    parent = net("10.103.6.0/24")
    with pytest.raises(AllocationError):
        ipam.free_subnet(parent, 16, [])
    with pytest.raises(AllocationError):
        ipam.free_subnet(parent, 33, [])
    with pytest.raises(AllocationError):
        ipam.free_subnet(parent, 25, [net("10.103.6.0/25"), net("10.103.6.128/25")])

def test_free_subnet_ignores_other_family():
    parent = net("10.0.0.0/24")
    assert ipam.free_subnet(parent, 25, [net("fd00::/64")]) == net("10.0.0.0/25")

@pytest.mark.parametrize("hosts,prefixlen", [
    (0, 30),
    (1, 30),
    (2, 29),
    (5, 29),
    (6, 28),
    (14, 27),
    (253, 24),
    (254, 23),
    (65533, 16),
])
def test_subnet_within(hosts, prefixlen):
    assert ipam.subnet_within(hosts) == prefixlen

def test_subnet_within_too_big():
    with pytest.raises(AllocationError):
        ipam.subnet_within(65534)

def test_address_counts():
    assert ipam.total_addresses(24) == 256
    assert ipam.usable_addresses(24) == 254
    assert ipam.usable_addresses(31) == 2
    assert ipam.usable_addresses(32) == 1
    assert ipam.total_addresses(64, 128) == 2 ** 64

def test_broadcast():
    address = ipaddress.ip_address("10.252.1.0")
    assert str(ipam.broadcast(address, 24)) == "10.252.1.255"
    assert str(ipam.broadcast(address, 17)) == "10.252.127.255"

def test_with_last_octet():
    assert str(ipam.with_last_octet(ipaddress.ip_address("10.92.100.0"), 71)) == "10.92.100.71"

def test_vlan_registry():
    registry = ipam.VlanRegistry()
    registry.allocate(2, owner="NMN")
    registry.allocate_range(1770, 1999, owner="NMN_RVR")
    assert registry.is_allocated(1800)
    assert not registry.is_allocated(3)
    with pytest.raises(VlanConflict):
        registry.allocate(2, owner="HMN")
    with pytest.raises(VlanConflict):
        registry.allocate_range(1500, 1770, owner="HMN_RVR")
    with pytest.raises(VlanConflict):
        registry.allocate_range(10, 5)
